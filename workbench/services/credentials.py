"""
API key resolution.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workbench.exceptions import CredentialError
from workbench.models.api_key import ApiKey

logger = logging.getLogger(__name__)


async def _oldest_key(session: AsyncSession) -> Optional[ApiKey]:
    result = await session.execute(
        select(ApiKey).order_by(ApiKey.created_at.asc(), ApiKey.id.asc()).limit(1)
    )
    return result.scalar_one_or_none()


async def resolve_api_key(
    session: AsyncSession,
    key_id: Optional[int] = None,
    fallback_to_any: bool = False,
) -> ApiKey:
    """
    Pick the API key to call the provider with.

    An explicit key_id must exist unless fallback_to_any is set, in which
    case the oldest registered key is used instead. Without a key_id the
    default key is used, then the oldest one.

    Raises:
        CredentialError: no key could be resolved
    """
    if key_id:
        api_key = await session.get(ApiKey, key_id)
        if api_key is not None:
            return api_key
        if not fallback_to_any:
            raise CredentialError(f'Invalid API key id: {key_id}')
        logger.warning('API key %s not found, falling back to first available key', key_id)
    else:
        result = await session.execute(
            select(ApiKey).where(ApiKey.is_default.is_(True)).limit(1)
        )
        api_key = result.scalar_one_or_none()
        if api_key is not None:
            return api_key

    api_key = await _oldest_key(session)
    if api_key is None:
        raise CredentialError('No API key available')
    return api_key
