from __future__ import annotations

import pytest

from socadmin.domain.permissions import SEED_ROLES, Permission
from socadmin.persistence.repos import roles as roles_repo
from socadmin.services import rbac


def test_client_user_seed_role_grants_read_only_permissions() -> None:
    _description, permissions = SEED_ROLES["Client User"]
    aggregated = rbac.aggregate_permissions([[p.value for p in permissions]])
    assert aggregated == frozenset({Permission.VIEW_LOGS, Permission.VIEW_ASSETS, Permission.VIEW_REPORTS})


def test_permissions_from_several_roles_are_unioned() -> None:
    aggregated = rbac.aggregate_permissions([["view_logs", "view_assets"], ["view_assets", "manage_users"]])
    assert aggregated == frozenset({Permission.VIEW_LOGS, Permission.VIEW_ASSETS, Permission.MANAGE_USERS})


def test_super_admin_needs_both_user_and_role_management() -> None:
    assert rbac.is_super_admin({Permission.MANAGE_USERS, Permission.MANAGE_ROLES})
    assert not rbac.is_super_admin({Permission.MANAGE_USERS})
    assert not rbac.is_super_admin(set())


def test_any_and_all_checks() -> None:
    granted = {Permission.VIEW_LOGS}
    assert rbac.has_any_permission(granted, [Permission.VIEW_LOGS, Permission.MANAGE_LOGS])
    assert not rbac.has_all_permissions(granted, [Permission.VIEW_LOGS, Permission.MANAGE_LOGS])
    assert not rbac.has_any_permission(granted, [])


@pytest.mark.asyncio
async def test_get_permissions_aggregates_assigned_roles(monkeypatch) -> None:
    async def _role_permissions(_session, user_id: str):
        assert user_id == "user-1"
        return [["view_logs"], ["manage_users", "bogus"], []]

    monkeypatch.setattr(roles_repo, "list_role_permissions_for_user", _role_permissions)

    permissions = await rbac.get_permissions(None, "user-1")
    assert permissions == frozenset({Permission.VIEW_LOGS, Permission.MANAGE_USERS})
    assert await rbac.user_has_permission(None, "user-1", Permission.VIEW_LOGS)
    assert not await rbac.user_is_super_admin(None, "user-1")


@pytest.mark.asyncio
async def test_user_without_roles_has_no_permissions(monkeypatch) -> None:
    async def _role_permissions(_session, _user_id: str):
        return []

    monkeypatch.setattr(roles_repo, "list_role_permissions_for_user", _role_permissions)
    assert await rbac.get_permissions(None, "nobody") == frozenset()
