from __future__ import annotations

import pytest

from socadmin.core.config import get_settings
from socadmin.domain.models import Client, KnowledgeEntry
from socadmin.persistence.guards import TenantPredicateError, client_predicate, company_predicate


def test_missing_company_predicate_raises() -> None:
    with pytest.raises(TenantPredicateError):
        company_predicate(Client, "")


def test_missing_client_predicate_raises() -> None:
    with pytest.raises(TenantPredicateError):
        client_predicate(KnowledgeEntry, None)


def test_predicate_is_built_when_scope_present() -> None:
    predicate = company_predicate(Client, "company-1")
    assert "company_id" in str(predicate)


def test_guard_can_be_disabled(monkeypatch) -> None:
    monkeypatch.setenv("AUTHZ_REQUIRE_TENANT_PREDICATE", "false")
    get_settings.cache_clear()
    client_predicate(KnowledgeEntry, None)
