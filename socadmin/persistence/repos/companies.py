from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.domain.models import Company
from socadmin.persistence.guards import require_scope_id


async def get_company(session: AsyncSession, company_id: str) -> Company | None:
    require_scope_id("company", company_id)
    result = await session.execute(select(Company).where(Company.id == company_id))
    return result.scalar_one_or_none()


async def list_companies(session: AsyncSession, company_id: str) -> list[Company]:
    # A caller only ever sees its own company row.
    company = await get_company(session, company_id)
    return [company] if company is not None else []


async def create_company(
    session: AsyncSession,
    *,
    company_id: str,
    name: str,
    email: str,
    settings_json: dict[str, Any],
) -> Company:
    company = Company(id=company_id, name=name, email=email, settings_json=settings_json)
    session.add(company)
    await session.flush()
    return company


async def update_fields(
    session: AsyncSession,
    company_id: str,
    *,
    name: str | None = None,
    email: str | None = None,
    settings_json: dict[str, Any] | None = None,
) -> Company | None:
    # Fetch first to enforce scoping and avoid accidental upserts.
    company = await get_company(session, company_id)
    if company is None:
        return None
    if name is not None:
        company.name = name
    if email is not None:
        company.email = email
    if settings_json is not None:
        company.settings_json = settings_json
    return company


async def delete_company(session: AsyncSession, company_id: str) -> bool:
    company = await get_company(session, company_id)
    if company is None:
        return False
    await session.delete(company)
    return True
