"""
Application configuration and paths.
"""
import os
from pathlib import Path

# Application identity
APP_NAME = 'VoiceWorkbench'
APP_VERSION = '0.1.0'

# Server configuration
SERVER_HOST = '127.0.0.1'
SERVER_PORT = 8080

# Data directory (override with VOICE_WORKBENCH_DATA_DIR)
DATA_DIR = Path(os.environ.get('VOICE_WORKBENCH_DATA_DIR', Path.home() / '.voice-workbench'))

# Database configuration
DATABASE_PATH = DATA_DIR / 'workbench.db'
DATABASE_URL = f'sqlite+aiosqlite:///{DATABASE_PATH}'

# Generated audio, served under FILES_URL_PREFIX
AUDIO_DIR = DATA_DIR / 'generated'
FILES_URL_PREFIX = '/files'

# Uploaded text files submitted for synthesis
UPLOADS_DIR = DATA_DIR / 'uploads'

# Remote provider
PROVIDER_BASE_URL = os.environ.get('MINIMAX_BASE_URL', 'https://api.minimaxi.com/v1')
PROVIDER_TIMEOUT = float(os.environ.get('MINIMAX_TIMEOUT', '60'))

# Synthesis defaults
DEFAULT_MODEL = 'speech-01-turbo'
DEFAULT_SPEED = 1.0
DEFAULT_VOL = 1.0
DEFAULT_SAMPLE_RATE = 32000
DEFAULT_BITRATE = 128000
DEFAULT_FORMAT = 'mp3'
DEFAULT_CHANNELS = 1

# Formats double as artifact file extensions
SUPPORTED_FORMATS = ('mp3', 'wav', 'flac', 'pcm')


def ensure_directories():
    """Create required directories if they don't exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    AUDIO_DIR.mkdir(parents=True, exist_ok=True)
    UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
