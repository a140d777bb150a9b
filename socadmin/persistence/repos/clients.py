from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.domain.models import Client
from socadmin.persistence.guards import company_predicate


async def list_clients(
    session: AsyncSession,
    company_id: str,
    *,
    search: str | None = None,
    status: str | None = None,
) -> list[Client]:
    stmt = select(Client).where(company_predicate(Client, company_id))
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(func.lower(Client.name).like(pattern), func.lower(Client.email).like(pattern))
        )
    if status:
        # Clients created before status existed count as active.
        status_expr = func.coalesce(Client.settings_json["status"].astext, "active")
        stmt = stmt.where(status_expr == status)
    # Newest tenants first, id as a deterministic tie-breaker.
    result = await session.execute(stmt.order_by(Client.created_at.desc(), Client.id.asc()))
    return list(result.scalars().all())


async def get_client(session: AsyncSession, company_id: str, client_id: str) -> Client | None:
    # Return None for company mismatch to keep 404 semantics.
    result = await session.execute(
        select(Client).where(Client.id == client_id, company_predicate(Client, company_id))
    )
    return result.scalar_one_or_none()


async def create_client(
    session: AsyncSession,
    *,
    client_id: str,
    company_id: str,
    name: str,
    email: str,
    settings_json: dict[str, Any],
) -> Client:
    client = Client(
        id=client_id,
        company_id=company_id,
        name=name,
        email=email,
        settings_json=settings_json,
    )
    session.add(client)
    await session.flush()
    return client


async def update_fields(
    session: AsyncSession,
    company_id: str,
    client_id: str,
    *,
    name: str | None = None,
    email: str | None = None,
    settings_json: dict[str, Any] | None = None,
) -> Client | None:
    client = await get_client(session, company_id, client_id)
    if client is None:
        return None
    if name is not None:
        client.name = name
    if email is not None:
        client.email = email
    if settings_json is not None:
        client.settings_json = settings_json
    return client


async def delete_client(session: AsyncSession, company_id: str, client_id: str) -> bool:
    client = await get_client(session, company_id, client_id)
    if client is None:
        return False
    await session.delete(client)
    return True
