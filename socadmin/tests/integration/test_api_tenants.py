from __future__ import annotations

import pytest

from socadmin.domain.permissions import Permission
from socadmin.persistence.repos import clients as clients_repo
from socadmin.persistence.repos import roles as roles_repo
from socadmin.tests.utils.fakes import (
    DEV_HEADERS,
    async_return,
    build_test_client,
    make_client,
    make_profile,
    make_role,
    patch_identity,
)

SUPER_ADMIN = {Permission.MANAGE_USERS, Permission.MANAGE_ROLES}


@pytest.mark.asyncio
async def test_create_client_returns_refreshed_list(monkeypatch) -> None:
    created: dict = {}

    async def _create_client(_session, **fields):
        created.update(fields)
        return make_client(client_id=fields["client_id"], name=fields["name"])

    patch_identity(monkeypatch, profile=make_profile(), permissions=SUPER_ADMIN)
    monkeypatch.setattr(clients_repo, "create_client", _create_client)
    stored = make_client(name="Acme")
    stored.settings_json = {"status": "active", "api_key": "secret"}
    monkeypatch.setattr(clients_repo, "list_clients", async_return([stored]))
    client, session = build_test_client(monkeypatch)

    async with client:
        response = await client.post(
            "/v1/clients", headers=DEV_HEADERS, json={"name": "  Acme ", "email": "sec@acme.example"}
        )

    assert response.status_code == 201
    assert created["company_id"] == "company-1"
    assert created["name"] == "Acme"
    assert created["settings_json"] == {"status": "active"}
    data = response.json()["data"]
    assert data[0]["name"] == "Acme"
    assert data[0]["api_key_configured"] is True
    assert "api_key" not in data[0]
    assert session.commits == 1


@pytest.mark.asyncio
async def test_create_client_without_company_is_rejected(monkeypatch) -> None:
    patch_identity(monkeypatch, profile=make_profile(company_id=None), permissions=SUPER_ADMIN)
    client, _session = build_test_client(monkeypatch)

    async with client:
        response = await client.post(
            "/v1/clients", headers=DEV_HEADERS, json={"name": "Acme", "email": "sec@acme.example"}
        )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "COMPANY_REQUIRED"


@pytest.mark.asyncio
async def test_create_client_validates_email(monkeypatch) -> None:
    patch_identity(monkeypatch, profile=make_profile(), permissions=SUPER_ADMIN)
    client, _session = build_test_client(monkeypatch)

    async with client:
        response = await client.post("/v1/clients", headers=DEV_HEADERS, json={"name": "Acme", "email": "nope"})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "REQUEST_VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_foreign_client_is_not_found(monkeypatch) -> None:
    patch_identity(monkeypatch, profile=make_profile(), permissions={Permission.VIEW_ALL_CLIENTS})
    monkeypatch.setattr(clients_repo, "get_client", async_return(None))
    client, _session = build_test_client(monkeypatch)

    async with client:
        response = await client.get("/v1/clients/other-company-client", headers=DEV_HEADERS)

    assert response.status_code == 404
    assert response.json()["error"] == {"code": "NOT_FOUND", "message": "Client not found"}


@pytest.mark.asyncio
async def test_deleting_seed_role_conflicts(monkeypatch) -> None:
    patch_identity(monkeypatch, profile=make_profile(), permissions={Permission.MANAGE_ROLES})
    monkeypatch.setattr(roles_repo, "get_role", async_return(make_role("Client User", ["view_logs"])))
    client, session = build_test_client(monkeypatch)

    async with client:
        response = await client.delete("/v1/roles/seed-role", headers=DEV_HEADERS)

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "ROLE_PROTECTED"
    assert "Client User" in error["message"]
    assert session.rollbacks == 1
