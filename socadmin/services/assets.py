from __future__ import annotations

from typing import Any
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.domain.models import Asset, SecurityLog
from socadmin.persistence.repos import assets as assets_repo
from socadmin.persistence.repos import logs as logs_repo
from socadmin.services.mutations import mutation


ASSET_STATUSES = ("online", "offline")


async def list_assets(session: AsyncSession, client_id: str) -> list[Asset]:
    return await assets_repo.list_assets(session, client_id)


async def create_asset(
    session: AsyncSession,
    client_id: str,
    *,
    name: str,
    ip_address: str | None,
    status: str = "online",
    vulnerabilities: list[dict[str, Any]] | None = None,
) -> list[Asset]:
    async with mutation(session, "create asset"):
        await assets_repo.create_asset(
            session,
            asset_id=uuid4().hex,
            client_id=client_id,
            name=name,
            ip_address=ip_address,
            status=status,
            vulnerabilities_json=list(vulnerabilities or []),
        )
    return await assets_repo.list_assets(session, client_id)


async def list_security_logs(
    session: AsyncSession,
    client_id: str,
    *,
    severity: str | None = None,
    limit: int = 100,
) -> list[SecurityLog]:
    return await logs_repo.list_logs(session, client_id, severity=severity, limit=limit)
