from __future__ import annotations

from typing import Iterable
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.core.errors import NotFoundError, ProtectedRoleError
from socadmin.domain.models import Role
from socadmin.domain.permissions import PROTECTED_ROLE_NAMES, Permission, serialize_permissions
from socadmin.persistence.repos import roles as roles_repo
from socadmin.services.mutations import mutation


def is_protected_role(name: str) -> bool:
    return name in PROTECTED_ROLE_NAMES


def ensure_deletable(name: str) -> None:
    # Checked before any storage call so nothing is deleted on refusal.
    if is_protected_role(name):
        raise ProtectedRoleError(f'The "{name}" role is a built-in role and cannot be deleted')


async def list_roles(session: AsyncSession) -> list[Role]:
    return await roles_repo.list_roles(session)


async def create_role(
    session: AsyncSession,
    *,
    name: str,
    description: str | None,
    permissions: Iterable[Permission],
) -> list[Role]:
    async with mutation(session, "create role"):
        await roles_repo.create_role(
            session,
            role_id=uuid4().hex,
            name=name,
            description=description,
            permissions_json=serialize_permissions(permissions),
        )
    return await roles_repo.list_roles(session)


async def update_role(
    session: AsyncSession,
    role_id: str,
    *,
    name: str | None = None,
    description: str | None = None,
    permissions: Iterable[Permission] | None = None,
) -> list[Role]:
    async with mutation(session, "update role"):
        role = await roles_repo.get_role(session, role_id)
        if role is None:
            raise NotFoundError("Role not found")
        if name is not None and name != role.name:
            # Renaming a seed role would let it be deleted afterwards.
            if is_protected_role(role.name):
                raise ProtectedRoleError(f'The "{role.name}" role is a built-in role and cannot be renamed')
            role.name = name
        if description is not None:
            role.description = description
        if permissions is not None:
            role.permissions_json = serialize_permissions(permissions)
    return await roles_repo.list_roles(session)


async def delete_role(session: AsyncSession, role_id: str) -> list[Role]:
    async with mutation(session, "delete role"):
        role = await roles_repo.get_role(session, role_id)
        if role is None:
            raise NotFoundError("Role not found")
        ensure_deletable(role.name)
        await roles_repo.delete_role(session, role_id)
    return await roles_repo.list_roles(session)
