from __future__ import annotations

import pytest

from socadmin.core.errors import ConflictError, MissingCompanyError, NotFoundError
from socadmin.persistence.repos import clients as clients_repo
from socadmin.persistence.repos import profiles as profiles_repo
from socadmin.persistence.repos import roles as roles_repo
from socadmin.services import identity, users
from socadmin.tests.utils.fakes import FakeSession, async_return, make_profile, make_role


@pytest.fixture
def member(monkeypatch):
    profile = make_profile(user_id="user-2", role="client_user")
    auditor = make_role("Auditor", ["view_logs"], role_id="auditor")

    async def _get_for_company(_session, company_id, user_id):
        return profile if (company_id, user_id) == ("company-1", "user-2") else None

    monkeypatch.setattr(profiles_repo, "get_for_company", _get_for_company)
    monkeypatch.setattr(profiles_repo, "list_profiles", async_return([profile]))
    monkeypatch.setattr(roles_repo, "list_assignments", async_return([("user-2", auditor)]))
    return profile


@pytest.mark.asyncio
async def test_list_users_groups_roles_by_user(member) -> None:
    listed = await users.list_users(FakeSession(), "company-1")
    assert len(listed) == 1
    assert listed[0].profile is member
    assert [role.name for role in listed[0].roles] == ["Auditor"]


@pytest.mark.asyncio
async def test_list_users_without_company_is_empty() -> None:
    assert await users.list_users(FakeSession(), None) == []


@pytest.mark.asyncio
async def test_update_user_normalizes_role_and_pins_client(monkeypatch, member) -> None:
    monkeypatch.setattr(clients_repo, "get_client", async_return(object()))
    session = FakeSession()

    await users.update_user(session, "company-1", "user-2", role="SOC_ADMIN", client_id="client-1")

    assert member.role == "soc_admin"
    assert member.client_id == "client-1"
    assert session.commits == 1


@pytest.mark.asyncio
async def test_update_user_rejects_foreign_client(monkeypatch, member) -> None:
    monkeypatch.setattr(clients_repo, "get_client", async_return(None))
    session = FakeSession()

    with pytest.raises(NotFoundError, match="Client not found"):
        await users.update_user(session, "company-1", "user-2", client_id="other-tenant")

    assert session.rollbacks == 1


@pytest.mark.asyncio
async def test_update_user_outside_company_is_not_found(member) -> None:
    with pytest.raises(NotFoundError, match="User not found"):
        await users.update_user(FakeSession(), "company-1", "user-9", display_name="x")


@pytest.mark.asyncio
async def test_mutations_require_company() -> None:
    with pytest.raises(MissingCompanyError):
        await users.assign_role(FakeSession(), None, "user-2", "auditor")


@pytest.mark.asyncio
async def test_duplicate_assignment_conflicts(monkeypatch, member) -> None:
    monkeypatch.setattr(roles_repo, "get_role", async_return(make_role("Auditor", [])))
    monkeypatch.setattr(roles_repo, "get_assignment", async_return(object()))

    with pytest.raises(ConflictError, match="Role already assigned to user"):
        await users.assign_role(FakeSession(), "company-1", "user-2", "auditor")


@pytest.mark.asyncio
async def test_removing_missing_assignment_is_not_found(monkeypatch, member) -> None:
    monkeypatch.setattr(roles_repo, "remove_role", async_return(False))

    with pytest.raises(NotFoundError, match="Role assignment not found"):
        await users.remove_role(FakeSession(), "company-1", "user-2", "auditor")


@pytest.mark.asyncio
async def test_register_identity_is_idempotent(monkeypatch) -> None:
    existing = make_profile(user_id="user-3")
    monkeypatch.setattr(profiles_repo, "get_by_user_id", async_return(existing))

    profile, created = await identity.register_identity(FakeSession(), user_id="user-3", email="a@b.example")

    assert profile is existing
    assert created is False


@pytest.mark.asyncio
async def test_register_identity_defaults_to_client_user(monkeypatch) -> None:
    captured: dict = {}

    async def _create_profile(_session, **fields):
        captured.update(fields)
        return make_profile(user_id=fields["user_id"], role=fields["role"])

    monkeypatch.setattr(profiles_repo, "get_by_user_id", async_return(None))
    monkeypatch.setattr(profiles_repo, "create_profile", _create_profile)
    session = FakeSession()

    _profile, created = await identity.register_identity(session, user_id="user-4", email="new@example.com")

    assert created is True
    assert captured["role"] == "client_user"
    assert captured["display_name"] == "new@example.com"
    assert session.commits == 1


@pytest.mark.asyncio
async def test_register_identity_attaches_unaffiliated_profile(monkeypatch) -> None:
    existing = make_profile(user_id="user-5", company_id=None)
    monkeypatch.setattr(profiles_repo, "get_by_user_id", async_return(existing))
    session = FakeSession()

    profile, created = await identity.register_identity(
        session, user_id="user-5", email=None, company_id="company-1"
    )

    assert created is False
    assert profile.company_id == "company-1"
    assert session.commits == 1


@pytest.mark.asyncio
async def test_register_identity_never_moves_profiles_between_companies(monkeypatch) -> None:
    existing = make_profile(user_id="user-6", company_id="company-2")
    monkeypatch.setattr(profiles_repo, "get_by_user_id", async_return(existing))

    with pytest.raises(ConflictError, match="another company"):
        await identity.register_identity(FakeSession(), user_id="user-6", email=None, company_id="company-1")

    assert existing.company_id == "company-2"
