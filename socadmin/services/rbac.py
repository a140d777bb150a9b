"""Permission aggregation over role assignments.

A user's effective permissions are the union of the permission sets of every
role assigned to them through ``user_roles``. Roles are the only source of
permissions; the ``profiles.role`` column is a coarse label and never grants
anything by itself.
"""
from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.domain.permissions import Permission, parse_permissions
from socadmin.persistence.repos import roles as roles_repo

logger = logging.getLogger(__name__)

SUPER_ADMIN_PERMISSIONS: frozenset[Permission] = frozenset(
    {Permission.MANAGE_USERS, Permission.MANAGE_ROLES}
)


def aggregate_permissions(role_permissions: Iterable[Iterable[str]]) -> frozenset[Permission]:
    # Set union collapses permissions granted by more than one role.
    aggregated: set[Permission] = set()
    for permissions in role_permissions:
        aggregated |= parse_permissions(permissions)
    return frozenset(aggregated)


async def get_permissions(session: AsyncSession, user_id: str) -> frozenset[Permission]:
    role_permissions = await roles_repo.list_role_permissions_for_user(session, user_id)
    return aggregate_permissions(role_permissions)


def has_permission(permissions: Iterable[Permission], permission: Permission) -> bool:
    return permission in set(permissions)


def has_any_permission(permissions: Iterable[Permission], required: Iterable[Permission]) -> bool:
    return not set(permissions).isdisjoint(required)


def has_all_permissions(permissions: Iterable[Permission], required: Iterable[Permission]) -> bool:
    return set(required) <= set(permissions)


def is_super_admin(permissions: Iterable[Permission]) -> bool:
    # Super admin is derived: both user and role management, never a role-name check.
    return has_all_permissions(permissions, SUPER_ADMIN_PERMISSIONS)


async def user_has_permission(session: AsyncSession, user_id: str, permission: Permission) -> bool:
    return has_permission(await get_permissions(session, user_id), permission)


async def user_has_any_permission(
    session: AsyncSession, user_id: str, required: Iterable[Permission]
) -> bool:
    return has_any_permission(await get_permissions(session, user_id), required)


async def user_is_super_admin(session: AsyncSession, user_id: str) -> bool:
    return is_super_admin(await get_permissions(session, user_id))
