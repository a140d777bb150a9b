from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.core.errors import ConflictError, DatabaseError, SocAdminError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def mutation(session: AsyncSession, action: str) -> AsyncIterator[None]:
    """Run one write and commit it, or roll back and leave prior state intact.

    Callers re-fetch their list after the block; nothing is patched in place.
    """
    try:
        yield
        await session.commit()
    except SocAdminError:
        await session.rollback()
        raise
    except IntegrityError as exc:
        await session.rollback()
        logger.info("mutation_conflict action=%s", action)
        raise ConflictError(f"Failed to {action}: record already exists") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("mutation_failed action=%s", action, exc_info=exc)
        raise DatabaseError(f"Failed to {action}") from exc
