"""
Pydantic schemas for API request/response validation.
"""
from workbench.schemas.api_key import ApiKeyCreate, ApiKeyListResponse, ApiKeyResponse
from workbench.schemas.job import JobListResponse, JobResponse, SynthesisCreate

__all__ = [
    'ApiKeyCreate',
    'ApiKeyListResponse',
    'ApiKeyResponse',
    'JobListResponse',
    'JobResponse',
    'SynthesisCreate',
]
