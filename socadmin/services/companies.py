from __future__ import annotations

from typing import Any
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.core.errors import ConflictError, NotFoundError
from socadmin.domain.models import Company
from socadmin.persistence.repos import companies as companies_repo
from socadmin.persistence.repos import profiles as profiles_repo
from socadmin.services.mutations import mutation


async def list_companies(session: AsyncSession, company_id: str | None) -> list[Company]:
    if not company_id:
        return []
    return await companies_repo.list_companies(session, company_id)


async def create_company(
    session: AsyncSession,
    *,
    actor_user_id: str,
    name: str,
    email: str,
    settings: dict[str, Any] | None = None,
) -> list[Company]:
    """Create a company and attach the creator's profile to it.

    A profile belongs to exactly one company, so callers that already have
    one are rejected.
    """
    company_id = uuid4().hex
    async with mutation(session, "create company"):
        profile = await profiles_repo.get_by_user_id(session, actor_user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        if profile.company_id is not None:
            raise ConflictError("Profile is already associated with a company")
        await companies_repo.create_company(
            session,
            company_id=company_id,
            name=name,
            email=email,
            settings_json=settings or {},
        )
        profile.company_id = company_id
    return await companies_repo.list_companies(session, company_id)


async def update_company(
    session: AsyncSession,
    company_id: str,
    target_id: str,
    *,
    name: str | None = None,
    email: str | None = None,
    settings: dict[str, Any] | None = None,
) -> list[Company]:
    # Callers can only touch their own company.
    if target_id != company_id:
        raise NotFoundError("Company not found")
    async with mutation(session, "update company"):
        company = await companies_repo.update_fields(
            session, company_id, name=name, email=email, settings_json=settings
        )
        if company is None:
            raise NotFoundError("Company not found")
    return await companies_repo.list_companies(session, company_id)


async def delete_company(session: AsyncSession, company_id: str, target_id: str) -> list[Company]:
    if target_id != company_id:
        raise NotFoundError("Company not found")
    async with mutation(session, "delete company"):
        if not await companies_repo.delete_company(session, company_id):
            raise NotFoundError("Company not found")
    return []
