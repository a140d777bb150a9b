from __future__ import annotations

import pytest

from socadmin.domain.permissions import (
    AppRole,
    Permission,
    normalize_app_role,
    parse_permissions,
    serialize_permissions,
)


def test_parse_drops_unknown_permission_strings() -> None:
    parsed = parse_permissions(["view_logs", "launch_missiles", "view_logs"])
    assert parsed == frozenset({Permission.VIEW_LOGS})


def test_parse_accepts_none() -> None:
    assert parse_permissions(None) == frozenset()


def test_serialize_uses_enum_order() -> None:
    serialized = serialize_permissions({Permission.VIEW_REPORTS, Permission.MANAGE_USERS})
    assert serialized == ["manage_users", "view_reports"]


def test_normalize_app_role_is_case_insensitive() -> None:
    assert normalize_app_role(" SOC_Admin ") is AppRole.SOC_ADMIN


def test_normalize_app_role_rejects_unknown_values() -> None:
    with pytest.raises(ValueError, match="Unsupported role"):
        normalize_app_role("root")
