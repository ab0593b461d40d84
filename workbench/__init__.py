"""
Voice Workbench: asynchronous speech-synthesis job service.
"""
