"""
Health check endpoint.
"""
from pydantic import BaseModel
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.config import APP_VERSION, PROVIDER_BASE_URL
from workbench.database import get_db
from workbench.models.api_key import ApiKey


router = APIRouter(tags=['health'])


class HealthResponse(BaseModel):
    """Health check response schema."""
    status: str
    version: str
    provider: str
    api_keys: int


@router.get('/health', response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """
    Check server health status.

    Reports the provider endpoint and how many API keys are registered.
    """
    result = await db.execute(select(func.count(ApiKey.id)))
    return HealthResponse(
        status='ok',
        version=APP_VERSION,
        provider=PROVIDER_BASE_URL,
        api_keys=result.scalar(),
    )
