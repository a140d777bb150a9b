from __future__ import annotations

from socadmin.domain.permissions import Permission
from socadmin.services.access_gate import (
    ADMIN_AREA,
    TENANT_ADMIN,
    AccessRequirement,
    AccessState,
    evaluate_access,
)


def test_unknown_permissions_are_loading_and_not_allowed() -> None:
    decision = evaluate_access(ADMIN_AREA, None)
    assert decision.state is AccessState.LOADING
    assert not decision.allowed
    assert decision.redirect_to is None


def test_denial_carries_redirect_target() -> None:
    decision = evaluate_access(ADMIN_AREA, {Permission.VIEW_LOGS}, redirect_to="/dashboard")
    assert decision.state is AccessState.UNAUTHORIZED
    assert decision.redirect_to == "/dashboard"


def test_any_mode_accepts_one_match() -> None:
    decision = evaluate_access(ADMIN_AREA, {Permission.MANAGE_ROLES})
    assert decision.allowed


def test_all_mode_requires_every_permission() -> None:
    requirement = AccessRequirement.all_of(Permission.VIEW_LOGS, Permission.MANAGE_LOGS)
    assert not evaluate_access(requirement, {Permission.VIEW_LOGS}).allowed
    assert evaluate_access(requirement, {Permission.VIEW_LOGS, Permission.MANAGE_LOGS}).allowed


def test_super_admin_mode() -> None:
    assert not evaluate_access(TENANT_ADMIN, {Permission.MANAGE_USERS}).allowed
    assert evaluate_access(TENANT_ADMIN, {Permission.MANAGE_USERS, Permission.MANAGE_ROLES}).allowed


def test_describe_lists_permissions() -> None:
    requirement = AccessRequirement.any_of(Permission.VIEW_LOGS, Permission.MANAGE_LOGS)
    assert requirement.describe() == "manage_logs or view_logs"
    assert TENANT_ADMIN.describe() == "super_admin"
