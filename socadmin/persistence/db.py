from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from socadmin.core.config import get_settings

logger = logging.getLogger(__name__)


def engine_options(
    database_url: str,
    *,
    pool_size: int,
    max_overflow: int,
    statement_timeout_ms: int,
) -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        return options
    # A console burst should queue on the pool rather than exhaust Postgres connections.
    options["pool_size"] = max(1, int(pool_size))
    options["max_overflow"] = max(0, int(max_overflow))
    options["pool_timeout"] = 30
    options["pool_recycle"] = 1800
    if statement_timeout_ms > 0:
        # Caps runaway vector scans when the ivfflat index is missing or cold.
        options["connect_args"] = {"server_settings": {"statement_timeout": str(int(statement_timeout_ms))}}
    return options


settings = get_settings()
engine = create_async_engine(
    settings.database_url,
    **engine_options(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        statement_timeout_ms=settings.db_statement_timeout_ms,
    ),
)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as session:
        yield session


async def dispose_engine() -> None:
    # Close pooled asyncpg connections on shutdown so Postgres sees clean disconnects.
    await engine.dispose()
    logger.info("db_engine_disposed")
