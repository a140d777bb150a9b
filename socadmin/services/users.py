from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.core.errors import ConflictError, NotFoundError
from socadmin.domain.models import Profile, Role
from socadmin.domain.permissions import normalize_app_role
from socadmin.persistence.repos import clients as clients_repo
from socadmin.persistence.repos import profiles as profiles_repo
from socadmin.persistence.repos import roles as roles_repo
from socadmin.services.clients import UNSET, require_company
from socadmin.services.mutations import mutation


@dataclass(frozen=True)
class UserWithRoles:
    profile: Profile
    roles: list[Role]


async def list_users(session: AsyncSession, company_id: str | None) -> list[UserWithRoles]:
    if not company_id:
        return []
    profiles = await profiles_repo.list_profiles(session, company_id)
    assignments = await roles_repo.list_assignments(session, [p.user_id for p in profiles])
    by_user: dict[str, list[Role]] = {}
    for user_id, role in assignments:
        by_user.setdefault(user_id, []).append(role)
    return [UserWithRoles(profile=p, roles=by_user.get(p.user_id, [])) for p in profiles]


async def _require_member(session: AsyncSession, company_id: str, user_id: str) -> Profile:
    profile = await profiles_repo.get_for_company(session, company_id, user_id)
    if profile is None:
        raise NotFoundError("User not found")
    return profile


async def update_user(
    session: AsyncSession,
    company_id: str | None,
    user_id: str,
    *,
    display_name: str | None = None,
    email: str | None = None,
    client_id: str | None = UNSET,
    role: str | None = None,
) -> list[UserWithRoles]:
    company_id = require_company(company_id)
    async with mutation(session, "update user"):
        profile = await _require_member(session, company_id, user_id)
        if display_name is not None:
            profile.display_name = display_name
        if email is not None:
            profile.email = email
        if client_id is not UNSET:
            if client_id is not None and await clients_repo.get_client(session, company_id, client_id) is None:
                # Users can only be pinned to tenants of their own company.
                raise NotFoundError("Client not found")
            profile.client_id = client_id
        if role is not None:
            profile.role = normalize_app_role(role).value
    return await list_users(session, company_id)


async def assign_role(
    session: AsyncSession, company_id: str | None, user_id: str, role_id: str
) -> list[UserWithRoles]:
    company_id = require_company(company_id)
    async with mutation(session, "assign role"):
        await _require_member(session, company_id, user_id)
        if await roles_repo.get_role(session, role_id) is None:
            raise NotFoundError("Role not found")
        if await roles_repo.get_assignment(session, user_id, role_id) is not None:
            raise ConflictError("Role already assigned to user")
        await roles_repo.assign_role(session, assignment_id=uuid4().hex, user_id=user_id, role_id=role_id)
    return await list_users(session, company_id)


async def remove_role(
    session: AsyncSession, company_id: str | None, user_id: str, role_id: str
) -> list[UserWithRoles]:
    company_id = require_company(company_id)
    async with mutation(session, "remove role"):
        await _require_member(session, company_id, user_id)
        if not await roles_repo.remove_role(session, user_id, role_id):
            raise NotFoundError("Role assignment not found")
    return await list_users(session, company_id)
