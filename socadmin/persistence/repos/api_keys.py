from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.domain.models import ApiKey


async def get_by_hash(session: AsyncSession, key_hash: str) -> ApiKey | None:
    result = await session.execute(select(ApiKey).where(ApiKey.key_hash == key_hash))
    return result.scalar_one_or_none()


async def touch_last_used(session: AsyncSession, api_key_id: str) -> None:
    await session.execute(update(ApiKey).where(ApiKey.id == api_key_id).values(last_used_at=func.now()))


async def get_by_id(session: AsyncSession, api_key_id: str) -> ApiKey | None:
    result = await session.execute(select(ApiKey).where(ApiKey.id == api_key_id))
    return result.scalar_one_or_none()


async def revoke(session: AsyncSession, api_key_id: str) -> None:
    # Keep the row so last_used_at history survives revocation.
    await session.execute(update(ApiKey).where(ApiKey.id == api_key_id).values(revoked_at=func.now()))
