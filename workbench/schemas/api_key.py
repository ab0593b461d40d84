"""
Pydantic schemas for API key operations.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ApiKeyCreate(BaseModel):
    """Schema for registering an API key."""
    key: str = Field(..., min_length=1)
    platform: str = 'minimax'
    remark: Optional[str] = None


class ApiKeyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    platform: str
    key: str
    remark: Optional[str]
    is_default: bool
    created_at: datetime


class ApiKeyListResponse(BaseModel):
    keys: List[ApiKeyResponse]
