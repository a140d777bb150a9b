from __future__ import annotations

from enum import Enum
from typing import Iterable


class Permission(str, Enum):
    MANAGE_USERS = "manage_users"
    MANAGE_ROLES = "manage_roles"
    VIEW_ALL_CLIENTS = "view_all_clients"
    MANAGE_CLIENTS = "manage_clients"
    VIEW_LOGS = "view_logs"
    MANAGE_LOGS = "manage_logs"
    VIEW_ASSETS = "view_assets"
    MANAGE_ASSETS = "manage_assets"
    VIEW_REPORTS = "view_reports"
    MANAGE_REPORTS = "manage_reports"


class AppRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    SOC_ADMIN = "soc_admin"
    CLIENT_USER = "client_user"


PERMISSION_LABELS: dict[Permission, tuple[str, str]] = {
    Permission.MANAGE_USERS: ("Manage Users", "Create, edit, and delete user accounts"),
    Permission.MANAGE_ROLES: ("Manage Roles", "Create and modify user roles"),
    Permission.VIEW_ALL_CLIENTS: ("View All Clients", "Access data from all clients"),
    Permission.MANAGE_CLIENTS: ("Manage Clients", "Create and modify client accounts"),
    Permission.VIEW_LOGS: ("View Logs", "Access security logs and events"),
    Permission.MANAGE_LOGS: ("Manage Logs", "Create, modify, and delete logs"),
    Permission.VIEW_ASSETS: ("View Assets", "View asset information and status"),
    Permission.MANAGE_ASSETS: ("Manage Assets", "Create and modify assets"),
    Permission.VIEW_REPORTS: ("View Reports", "Access security reports"),
    Permission.MANAGE_REPORTS: ("Manage Reports", "Create and modify reports"),
}

SUPER_ADMIN_ROLE = "Super Admin"
SOC_ADMIN_ROLE = "SOC Admin"
CLIENT_USER_ROLE = "Client User"

# Seed roles are created by the initial migration and must never be deleted.
SEED_ROLES: dict[str, tuple[str, tuple[Permission, ...]]] = {
    SUPER_ADMIN_ROLE: (
        "Full system access and administration",
        tuple(Permission),
    ),
    SOC_ADMIN_ROLE: (
        "Security Operations Center administrator",
        (
            Permission.VIEW_ALL_CLIENTS,
            Permission.MANAGE_CLIENTS,
            Permission.VIEW_LOGS,
            Permission.MANAGE_LOGS,
            Permission.VIEW_ASSETS,
            Permission.MANAGE_ASSETS,
            Permission.VIEW_REPORTS,
            Permission.MANAGE_REPORTS,
        ),
    ),
    CLIENT_USER_ROLE: (
        "Standard client access",
        (Permission.VIEW_LOGS, Permission.VIEW_ASSETS, Permission.VIEW_REPORTS),
    ),
}

PROTECTED_ROLE_NAMES: frozenset[str] = frozenset(SEED_ROLES)


def parse_permissions(values: Iterable[str] | None) -> frozenset[Permission]:
    # Stored permission arrays are loosely typed; drop anything outside the closed enum.
    parsed: set[Permission] = set()
    for value in values or ():
        try:
            parsed.add(Permission(value))
        except ValueError:
            continue
    return frozenset(parsed)


def serialize_permissions(permissions: Iterable[Permission]) -> list[str]:
    # Persist in enum order so role rows diff cleanly.
    wanted = set(permissions)
    return [perm.value for perm in Permission if perm in wanted]


def normalize_app_role(role: str) -> AppRole:
    normalized = role.strip().lower()
    try:
        return AppRole(normalized)
    except ValueError as exc:
        raise ValueError(f"Unsupported role: {role}") from exc
