from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.core.errors import MissingCompanyError, NotFoundError
from socadmin.domain.models import Asset, Client
from socadmin.persistence.repos import assets as assets_repo
from socadmin.persistence.repos import clients as clients_repo
from socadmin.persistence.repos import logs as logs_repo
from socadmin.services.mutations import mutation


CLIENT_STATUSES = ("active", "inactive")
STATS_WINDOW_DAYS = 30
_SEVERITIES = ("critical", "high", "medium", "low")

# Sentinel distinguishing "leave unchanged" from an explicit empty value.
UNSET: Any = object()


def client_settings(client: Client) -> dict[str, Any]:
    # Stored settings may be missing or partial; status defaults to active.
    raw = client.settings_json if isinstance(client.settings_json, dict) else {}
    return {"status": "active", **raw}


def require_company(company_id: str | None) -> str:
    if not company_id:
        raise MissingCompanyError("You must be associated with a company to manage tenants")
    return company_id


async def list_clients(
    session: AsyncSession,
    company_id: str | None,
    *,
    search: str | None = None,
    status: str | None = None,
) -> list[Client]:
    if not company_id:
        return []
    return await clients_repo.list_clients(session, company_id, search=search, status=status)


async def get_client(session: AsyncSession, company_id: str | None, client_id: str) -> Client:
    client = None
    if company_id:
        client = await clients_repo.get_client(session, company_id, client_id)
    if client is None:
        # Same error for missing and foreign tenants to avoid leaking existence.
        raise NotFoundError("Client not found")
    return client


async def create_client(
    session: AsyncSession,
    company_id: str | None,
    *,
    name: str,
    email: str,
) -> list[Client]:
    company_id = require_company(company_id)
    async with mutation(session, "create tenant"):
        await clients_repo.create_client(
            session,
            client_id=uuid4().hex,
            company_id=company_id,
            name=name,
            email=email,
            settings_json={"status": "active"},
        )
    return await clients_repo.list_clients(session, company_id)


async def update_client(
    session: AsyncSession,
    company_id: str | None,
    client_id: str,
    *,
    name: str | None = None,
    email: str | None = None,
    status: str | None = None,
    api_key: str | None = UNSET,
    edr_endpoint: str | None = UNSET,
) -> list[Client]:
    company_id = require_company(company_id)
    async with mutation(session, "update tenant"):
        client = await clients_repo.get_client(session, company_id, client_id)
        if client is None:
            raise NotFoundError("Client not found")
        # Merge into the existing map so unknown keys survive edits.
        settings = client_settings(client)
        if status is not None:
            settings["status"] = status
        if api_key is not UNSET:
            settings["api_key"] = api_key
        if edr_endpoint is not UNSET:
            settings["edr_endpoint"] = edr_endpoint
        await clients_repo.update_fields(
            session, company_id, client_id, name=name, email=email, settings_json=settings
        )
    return await clients_repo.list_clients(session, company_id)


async def delete_client(session: AsyncSession, company_id: str | None, client_id: str) -> list[Client]:
    company_id = require_company(company_id)
    async with mutation(session, "delete tenant"):
        if not await clients_repo.delete_client(session, company_id, client_id):
            raise NotFoundError("Client not found")
    return await clients_repo.list_clients(session, company_id)


@dataclass(frozen=True)
class AssetStats:
    total: int = 0
    online: int = 0
    offline: int = 0
    vulnerable: int = 0


@dataclass(frozen=True)
class EventStats:
    total: int = 0
    by_severity: dict[str, int] = field(default_factory=lambda: {s: 0 for s in _SEVERITIES})


@dataclass(frozen=True)
class TenantStats:
    assets: AssetStats
    events: EventStats
    last_activity: datetime | None


def summarize_assets(assets: Iterable[Asset]) -> AssetStats:
    items = list(assets)
    return AssetStats(
        total=len(items),
        online=sum(1 for a in items if a.status == "online"),
        offline=sum(1 for a in items if a.status == "offline"),
        vulnerable=sum(
            1 for a in items if isinstance(a.vulnerabilities_json, list) and a.vulnerabilities_json
        ),
    )


def summarize_events(markers: Iterable[tuple[str, datetime]]) -> tuple[EventStats, datetime | None]:
    counts = {severity: 0 for severity in _SEVERITIES}
    total = 0
    last_activity: datetime | None = None
    for severity, timestamp in markers:
        total += 1
        if severity in counts:
            counts[severity] += 1
        if last_activity is None or timestamp > last_activity:
            last_activity = timestamp
    return EventStats(total=total, by_severity=counts), last_activity


async def get_client_stats(
    session: AsyncSession,
    company_id: str | None,
    client_id: str,
    *,
    now: datetime | None = None,
) -> TenantStats:
    await get_client(session, company_id, client_id)
    since = (now or datetime.now(timezone.utc)) - timedelta(days=STATS_WINDOW_DAYS)
    assets = await assets_repo.list_assets(session, client_id)
    markers = await logs_repo.list_event_markers(session, client_id, since=since)
    events, last_activity = summarize_events(markers)
    return TenantStats(assets=summarize_assets(assets), events=events, last_activity=last_activity)
