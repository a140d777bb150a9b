from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
from sqlalchemy.dialects import postgresql

from socadmin.core.config import get_settings
from socadmin.persistence.guards import TenantPredicateError
from socadmin.persistence.repos import knowledge as knowledge_repo

QUERY = [0.25] * 768


class _Result:
    def __init__(self, rows: list[Any]) -> None:
        self._rows = rows

    def all(self) -> list[Any]:
        return self._rows


class _CapturingSession:
    """Records the statement a repository builds instead of running it."""

    def __init__(self, rows: list[Any] | None = None) -> None:
        self.statements: list[Any] = []
        self._rows = rows or []

    async def execute(self, stmt: Any) -> _Result:
        self.statements.append(stmt)
        return _Result(self._rows)


def _compile(stmt: Any) -> tuple[str, dict[str, Any]]:
    compiled = stmt.compile(dialect=postgresql.dialect())
    return " ".join(str(compiled).split()), dict(compiled.params)


async def _search_sql(**kwargs: Any) -> tuple[str, dict[str, Any]]:
    session = _CapturingSession()
    await knowledge_repo.search(session, QUERY, **kwargs)  # type: ignore[arg-type]
    assert len(session.statements) == 1
    return _compile(session.statements[0])


@pytest.mark.asyncio
async def test_search_filters_on_strict_similarity_threshold() -> None:
    sql, params = await _search_sql(threshold=0.42, top_k=5, client_id="client-1")

    where = sql.split(" WHERE ", 1)[1].split(" ORDER BY ", 1)[0]
    assert "<=>" in where
    assert " > " in where
    assert ">=" not in where
    assert 0.42 in params.values()


@pytest.mark.asyncio
async def test_search_scopes_to_requested_tenant() -> None:
    sql, params = await _search_sql(threshold=0.7, top_k=5, client_id="client-1")

    assert "knowledge_base.client_id = " in sql
    assert "IS NULL" not in sql
    assert "client-1" in params.values()


@pytest.mark.asyncio
async def test_search_without_tenant_returns_only_global_entries() -> None:
    sql, _params = await _search_sql(threshold=0.7, top_k=5, client_id=None)

    assert "knowledge_base.client_id IS NULL" in sql
    assert "knowledge_base.client_id = " not in sql


@pytest.mark.asyncio
async def test_search_orders_by_distance_and_limits_to_top_k() -> None:
    sql, params = await _search_sql(threshold=0.7, top_k=3, client_id="client-1")

    order_by = sql.split(" ORDER BY ", 1)[1].split(" LIMIT ", 1)[0]
    distance, tiebreak = order_by.split(", ")
    assert distance.lstrip("(").startswith("knowledge_base.embedding <=> ")
    assert distance.endswith(" ASC")
    assert tiebreak == "knowledge_base.id ASC"
    assert " LIMIT " in sql
    assert 3 in params.values()


@pytest.mark.asyncio
async def test_negative_top_k_limits_to_nothing() -> None:
    _sql, params = await _search_sql(threshold=0.7, top_k=-2, client_id=None)
    assert 0 in params.values()


@pytest.mark.asyncio
async def test_search_maps_rows_to_hits() -> None:
    row = SimpleNamespace(
        id="k1", content="patch web-01", metadata_json=None, client_id="client-1", similarity=0.91
    )
    session = _CapturingSession([row])

    hits = await knowledge_repo.search(
        session, QUERY, threshold=0.7, top_k=5, client_id="client-1"  # type: ignore[arg-type]
    )

    assert len(hits) == 1
    assert hits[0].metadata == {}
    assert hits[0].similarity == pytest.approx(0.91)


@pytest.mark.asyncio
async def test_search_rejects_empty_tenant_id(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTHZ_REQUIRE_TENANT_PREDICATE", "true")
    get_settings.cache_clear()
    with pytest.raises(TenantPredicateError):
        await knowledge_repo.search(_CapturingSession(), QUERY, threshold=0.7, top_k=5, client_id="")  # type: ignore[arg-type]
