from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.domain.models import Asset
from socadmin.persistence.guards import client_predicate


async def list_assets(session: AsyncSession, client_id: str) -> list[Asset]:
    result = await session.execute(
        select(Asset).where(client_predicate(Asset, client_id)).order_by(Asset.created_at, Asset.id)
    )
    return list(result.scalars().all())


async def create_asset(
    session: AsyncSession,
    *,
    asset_id: str,
    client_id: str,
    name: str,
    ip_address: str | None,
    status: str,
    vulnerabilities_json: list[dict[str, Any]],
) -> Asset:
    asset = Asset(
        id=asset_id,
        client_id=client_id,
        name=name,
        ip_address=ip_address,
        status=status,
        vulnerabilities_json=vulnerabilities_json,
    )
    session.add(asset)
    await session.flush()
    return asset
