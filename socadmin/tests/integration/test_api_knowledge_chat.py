from __future__ import annotations

import pytest

from socadmin.core.errors import NoEmbeddingsGenerated
from socadmin.domain.permissions import Permission
from socadmin.services import clients as clients_service
from socadmin.services import knowledge as knowledge_service
from socadmin.services import rag_chat
from socadmin.services.knowledge import IngestResult
from socadmin.services.rag_chat import ChatOutcome
from socadmin.tests.utils.fakes import DEV_HEADERS, async_return, build_test_client, make_client, make_profile, patch_identity

ANALYST = {Permission.VIEW_ALL_CLIENTS, Permission.MANAGE_CLIENTS}


@pytest.mark.asyncio
async def test_embed_documents_success_is_enveloped(monkeypatch) -> None:
    patch_identity(monkeypatch, profile=make_profile(), permissions=ANALYST)
    monkeypatch.setattr(clients_service, "get_client", async_return(make_client()))
    monkeypatch.setattr(knowledge_service, "embed_documents", async_return(IngestResult(3, 2)))
    client, _session = build_test_client(monkeypatch)

    async with client:
        response = await client.post(
            "/v1/knowledge/embed-documents",
            headers=DEV_HEADERS,
            json={"clientId": "client-1", "documents": [{"content": "a"}, {"content": "b"}]},
        )

    assert response.status_code == 200
    assert response.json()["data"] == {
        "success": True,
        "message": "Successfully embedded 3 chunks from 2 documents",
        "chunksProcessed": 3,
        "documentsProcessed": 2,
    }


@pytest.mark.asyncio
async def test_embed_documents_failure_keeps_flat_body(monkeypatch) -> None:
    async def _fail(*_args, **_kwargs):
        raise NoEmbeddingsGenerated("No valid embeddings could be generated")

    patch_identity(monkeypatch, profile=make_profile(), permissions=ANALYST)
    monkeypatch.setattr(clients_service, "get_client", async_return(make_client()))
    monkeypatch.setattr(knowledge_service, "embed_documents", _fail)
    client, _session = build_test_client(monkeypatch)

    async with client:
        response = await client.post(
            "/v1/knowledge/embed-documents",
            headers=DEV_HEADERS,
            json={"clientId": "client-1", "documents": [{"content": "a"}]},
        )

    assert response.status_code == 500
    assert response.json() == {"error": "No valid embeddings could be generated", "success": False}
    assert response.headers["X-Request-Id"]


@pytest.mark.asyncio
async def test_embed_documents_requires_documents(monkeypatch) -> None:
    patch_identity(monkeypatch, profile=make_profile(), permissions=ANALYST)
    client, _session = build_test_client(monkeypatch)

    async with client:
        response = await client.post(
            "/v1/knowledge/embed-documents", headers=DEV_HEADERS, json={"clientId": "client-1", "documents": []}
        )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_chat_success_is_enveloped(monkeypatch) -> None:
    seen: dict = {}

    async def _answer(_db, **kwargs):
        seen.update(kwargs)
        return ChatOutcome(200, {"response": "hi", "context": {"documentsFound": 1, "hasContext": True}})

    patch_identity(monkeypatch, profile=make_profile(), permissions=ANALYST)
    monkeypatch.setattr(clients_service, "get_client", async_return(make_client()))
    monkeypatch.setattr(rag_chat, "answer_chat", _answer)
    client, _session = build_test_client(monkeypatch)

    async with client:
        response = await client.post(
            "/v1/rag/chat",
            headers=DEV_HEADERS,
            json={
                "message": "what is open?",
                "clientId": "client-1",
                "conversationHistory": [{"role": "user", "content": "hello"}],
            },
        )

    assert response.status_code == 200
    assert response.json()["data"]["context"] == {"documentsFound": 1, "hasContext": True}
    assert seen["client_id"] == "client-1"
    assert seen["history"] == [{"role": "user", "content": "hello"}]


@pytest.mark.asyncio
async def test_chat_failure_returns_apology_body(monkeypatch) -> None:
    body = {"error": "Embedding service returned 500", "response": "I apologize"}
    patch_identity(monkeypatch, profile=make_profile(), permissions={Permission.VIEW_REPORTS})
    monkeypatch.setattr(rag_chat, "answer_chat", async_return(ChatOutcome(500, body)))
    client, _session = build_test_client(monkeypatch)

    async with client:
        response = await client.post(
            "/v1/rag/chat", headers={**DEV_HEADERS, "X-Request-Id": "req-chat-1"}, json={"message": "hi"}
        )

    assert response.status_code == 500
    assert response.json() == body
    assert response.headers["X-Request-Id"] == "req-chat-1"


@pytest.mark.asyncio
async def test_client_user_cannot_chat_about_other_tenant(monkeypatch) -> None:
    profile = make_profile(client_id="client-1", role="client_user")
    patch_identity(monkeypatch, profile=profile, permissions={Permission.VIEW_REPORTS})
    client, _session = build_test_client(monkeypatch)

    async with client:
        response = await client.post(
            "/v1/rag/chat", headers=DEV_HEADERS, json={"message": "hi", "clientId": "client-2"}
        )

    assert response.status_code == 404
