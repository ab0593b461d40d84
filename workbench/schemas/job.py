"""
Pydantic schemas for synthesis job API operations.
"""
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from workbench.config import (
    DEFAULT_BITRATE,
    DEFAULT_CHANNELS,
    DEFAULT_FORMAT,
    DEFAULT_MODEL,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_SPEED,
    DEFAULT_VOL,
)


class SynthesisCreate(BaseModel):
    """Schema for submitting a synthesis job."""
    text: Optional[str] = Field(None, description='The text to synthesize')
    voice_id: str = Field(..., min_length=1, description='Provider voice id')
    key_id: Optional[int] = Field(None, description='API key id (null = default key)')
    model: str = Field(DEFAULT_MODEL, min_length=1)
    mode: Literal['async', 'sync'] = 'async'
    speed: float = Field(DEFAULT_SPEED, gt=0)
    vol: float = Field(DEFAULT_VOL, gt=0)
    format: str = DEFAULT_FORMAT
    sample_rate: int = Field(DEFAULT_SAMPLE_RATE, gt=0)
    bitrate: int = Field(DEFAULT_BITRATE, gt=0)
    channels: int = Field(DEFAULT_CHANNELS, ge=1, le=2)


class JobResponse(BaseModel):
    """Schema for job response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    remote_task_id: Optional[int]
    mode: str
    status: str
    text: Optional[str]
    input_file: Optional[str]
    voice_id: str
    model: str
    speed: float
    vol: float
    format: str
    sample_rate: int
    bitrate: int
    channels: int
    output_path: Optional[str]
    error_message: Optional[str]
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime]


class JobListResponse(BaseModel):
    """Schema for paginated job list response."""
    jobs: List[JobResponse]
    total: int
    limit: int
    offset: int
