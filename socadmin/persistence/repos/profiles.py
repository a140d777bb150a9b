from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.domain.models import Profile
from socadmin.persistence.guards import company_predicate


async def get_by_user_id(session: AsyncSession, user_id: str) -> Profile | None:
    result = await session.execute(select(Profile).where(Profile.user_id == user_id))
    return result.scalar_one_or_none()


async def get_for_company(session: AsyncSession, company_id: str, user_id: str) -> Profile | None:
    result = await session.execute(
        select(Profile).where(Profile.user_id == user_id, company_predicate(Profile, company_id))
    )
    return result.scalar_one_or_none()


async def list_profiles(session: AsyncSession, company_id: str) -> list[Profile]:
    result = await session.execute(
        select(Profile)
        .where(company_predicate(Profile, company_id))
        .order_by(Profile.created_at, Profile.id)
    )
    return list(result.scalars().all())


async def create_profile(
    session: AsyncSession,
    *,
    profile_id: str,
    user_id: str,
    display_name: str | None,
    email: str | None,
    role: str,
    company_id: str | None = None,
    client_id: str | None = None,
) -> Profile:
    profile = Profile(
        id=profile_id,
        user_id=user_id,
        display_name=display_name,
        email=email,
        role=role,
        company_id=company_id,
        client_id=client_id,
    )
    session.add(profile)
    await session.flush()
    return profile
