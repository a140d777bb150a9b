from __future__ import annotations

from socadmin.persistence.db import engine_options


def test_postgres_pool_is_bounded_with_statement_timeout() -> None:
    options = engine_options(
        "postgresql+asyncpg://u:p@db/socadmin", pool_size=0, max_overflow=-3, statement_timeout_ms=15000
    )
    assert options["pool_size"] == 1
    assert options["max_overflow"] == 0
    assert options["connect_args"] == {"server_settings": {"statement_timeout": "15000"}}


def test_statement_timeout_can_be_disabled() -> None:
    options = engine_options(
        "postgresql+asyncpg://u:p@db/socadmin", pool_size=5, max_overflow=10, statement_timeout_ms=0
    )
    assert "connect_args" not in options


def test_sqlite_skips_pool_options() -> None:
    assert engine_options("sqlite+aiosqlite://", pool_size=5, max_overflow=10, statement_timeout_ms=1000) == {
        "pool_pre_ping": True
    }
