from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from socadmin.core.errors import ConflictError, DatabaseError, NotFoundError
from socadmin.services.mutations import mutation
from socadmin.tests.utils.fakes import FakeSession


@pytest.mark.asyncio
async def test_successful_block_commits() -> None:
    session = FakeSession()
    async with mutation(session, "create tenant"):
        pass
    assert (session.commits, session.rollbacks) == (1, 0)


@pytest.mark.asyncio
async def test_integrity_error_becomes_conflict() -> None:
    session = FakeSession(fail_commit=IntegrityError("INSERT", {}, Exception("duplicate key")))
    with pytest.raises(ConflictError, match="Failed to create tenant"):
        async with mutation(session, "create tenant"):
            pass
    assert session.rollbacks == 1


@pytest.mark.asyncio
async def test_other_database_errors_are_wrapped() -> None:
    session = FakeSession()
    with pytest.raises(DatabaseError, match="Failed to delete role"):
        async with mutation(session, "delete role"):
            raise OperationalError("DELETE", {}, Exception("connection lost"))
    assert session.rollbacks == 1
    assert session.commits == 0


@pytest.mark.asyncio
async def test_domain_errors_roll_back_and_propagate() -> None:
    session = FakeSession()
    with pytest.raises(NotFoundError):
        async with mutation(session, "update tenant"):
            raise NotFoundError("Client not found")
    assert session.rollbacks == 1
