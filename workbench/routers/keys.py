"""
API key endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.database import get_db
from workbench.exceptions import NotFoundError
from workbench.models.api_key import ApiKey
from workbench.schemas.api_key import ApiKeyCreate, ApiKeyListResponse, ApiKeyResponse


router = APIRouter(prefix='/api/keys', tags=['keys'])


@router.get('', response_model=ApiKeyListResponse)
async def list_keys(db: AsyncSession = Depends(get_db)) -> ApiKeyListResponse:
    result = await db.execute(select(ApiKey).order_by(ApiKey.created_at.asc(), ApiKey.id.asc()))
    return ApiKeyListResponse(
        keys=[ApiKeyResponse.model_validate(k) for k in result.scalars().all()]
    )


@router.post('', response_model=ApiKeyResponse, status_code=201)
async def add_key(
    key_data: ApiKeyCreate,
    db: AsyncSession = Depends(get_db),
) -> ApiKeyResponse:
    """Register an API key. The first key becomes the default."""
    count_result = await db.execute(select(func.count(ApiKey.id)))
    is_first = count_result.scalar() == 0

    api_key = ApiKey(
        platform=key_data.platform,
        key=key_data.key,
        remark=key_data.remark,
        is_default=is_first,
    )
    db.add(api_key)
    await db.commit()
    await db.refresh(api_key)
    return ApiKeyResponse.model_validate(api_key)


@router.put('/{key_id}/default', response_model=ApiKeyResponse)
async def set_default_key(
    key_id: int,
    db: AsyncSession = Depends(get_db),
) -> ApiKeyResponse:
    api_key = await db.get(ApiKey, key_id)
    if api_key is None:
        raise NotFoundError('API key', key_id)

    await db.execute(update(ApiKey).values(is_default=False))
    api_key.is_default = True
    await db.commit()
    await db.refresh(api_key)
    return ApiKeyResponse.model_validate(api_key)


@router.delete('/{key_id}', status_code=204)
async def delete_key(
    key_id: int,
    db: AsyncSession = Depends(get_db),
):
    api_key = await db.get(ApiKey, key_id)
    if api_key is None:
        raise NotFoundError('API key', key_id)

    await db.delete(api_key)
    await db.commit()
