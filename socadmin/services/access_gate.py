from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from socadmin.domain.permissions import Permission
from socadmin.services.rbac import has_all_permissions, has_any_permission, is_super_admin


class AccessState(str, Enum):
    LOADING = "loading"
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"


class RequirementMode(str, Enum):
    ANY = "any"
    ALL = "all"
    SUPER_ADMIN = "super_admin"


@dataclass(frozen=True)
class AccessRequirement:
    permissions: frozenset[Permission]
    mode: RequirementMode = RequirementMode.ANY

    @classmethod
    def any_of(cls, *permissions: Permission) -> "AccessRequirement":
        return cls(frozenset(permissions), RequirementMode.ANY)

    @classmethod
    def all_of(cls, *permissions: Permission) -> "AccessRequirement":
        return cls(frozenset(permissions), RequirementMode.ALL)

    @classmethod
    def super_admin(cls) -> "AccessRequirement":
        return cls(frozenset(), RequirementMode.SUPER_ADMIN)

    def describe(self) -> str:
        if self.mode is RequirementMode.SUPER_ADMIN:
            return "super_admin"
        joiner = " or " if self.mode is RequirementMode.ANY else " and "
        return joiner.join(sorted(p.value for p in self.permissions))


@dataclass(frozen=True)
class AccessDecision:
    state: AccessState
    redirect_to: str | None = None

    @property
    def allowed(self) -> bool:
        return self.state is AccessState.AUTHORIZED


def _satisfies(requirement: AccessRequirement, permissions: frozenset[Permission]) -> bool:
    # Exhaustive over RequirementMode; an unknown mode never authorizes.
    if requirement.mode is RequirementMode.SUPER_ADMIN:
        return is_super_admin(permissions)
    if requirement.mode is RequirementMode.ALL:
        return has_all_permissions(permissions, requirement.permissions)
    if requirement.mode is RequirementMode.ANY:
        return has_any_permission(permissions, requirement.permissions)
    return False


def evaluate_access(
    requirement: AccessRequirement,
    permissions: Iterable[Permission] | None,
    *,
    redirect_to: str = "/",
) -> AccessDecision:
    """Decide whether a protected view may render.

    ``permissions`` is ``None`` while the permission fetch is still in flight;
    that state denies navigation like an explicit refusal does, but callers can
    render a placeholder instead of redirecting.
    """
    if permissions is None:
        return AccessDecision(AccessState.LOADING)
    if _satisfies(requirement, frozenset(permissions)):
        return AccessDecision(AccessState.AUTHORIZED)
    return AccessDecision(AccessState.UNAUTHORIZED, redirect_to=redirect_to)


# Gates used by the console screens.
ADMIN_AREA = AccessRequirement.any_of(Permission.MANAGE_USERS, Permission.MANAGE_ROLES)
USER_ADMIN = AccessRequirement.any_of(Permission.MANAGE_USERS)
ROLE_ADMIN = AccessRequirement.any_of(Permission.MANAGE_ROLES)
TENANT_ADMIN = AccessRequirement.super_admin()
CLIENT_READ = AccessRequirement.any_of(Permission.VIEW_ALL_CLIENTS, Permission.MANAGE_CLIENTS)
CLIENT_WRITE = AccessRequirement.any_of(Permission.MANAGE_CLIENTS)
ASSET_READ = AccessRequirement.any_of(Permission.VIEW_ASSETS, Permission.MANAGE_ASSETS)
ASSET_WRITE = AccessRequirement.any_of(Permission.MANAGE_ASSETS)
LOG_READ = AccessRequirement.any_of(Permission.VIEW_LOGS, Permission.MANAGE_LOGS)
# Client users reach the assistant from their own dashboard via view_reports.
CHAT = AccessRequirement.any_of(Permission.VIEW_ALL_CLIENTS, Permission.MANAGE_CLIENTS, Permission.VIEW_REPORTS)
