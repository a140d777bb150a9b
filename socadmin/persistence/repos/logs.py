from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.domain.models import SecurityLog
from socadmin.persistence.guards import client_predicate


async def list_logs(
    session: AsyncSession,
    client_id: str,
    *,
    since: datetime | None = None,
    severity: str | None = None,
    limit: int = 100,
) -> list[SecurityLog]:
    stmt = select(SecurityLog).where(client_predicate(SecurityLog, client_id))
    if since is not None:
        stmt = stmt.where(SecurityLog.timestamp >= since)
    if severity:
        stmt = stmt.where(SecurityLog.severity == severity)
    # Most recent events first for triage screens.
    stmt = stmt.order_by(SecurityLog.timestamp.desc(), SecurityLog.id.asc()).limit(max(1, limit))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_event_markers(
    session: AsyncSession, client_id: str, *, since: datetime
) -> list[tuple[str, datetime]]:
    # Only severity and timestamp are needed for tenant statistics.
    result = await session.execute(
        select(SecurityLog.severity, SecurityLog.timestamp)
        .where(client_predicate(SecurityLog, client_id), SecurityLog.timestamp >= since)
        .order_by(SecurityLog.timestamp.desc())
    )
    return [(severity, timestamp) for severity, timestamp in result.all()]
