"""
SQLAlchemy models.
"""
from workbench.models.base import Base
from workbench.models.api_key import ApiKey
from workbench.models.job import JobMode, JobStatus, SynthesisJob

__all__ = ['Base', 'ApiKey', 'JobMode', 'JobStatus', 'SynthesisJob']
