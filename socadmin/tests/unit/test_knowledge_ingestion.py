from __future__ import annotations

import pytest

from socadmin.core.errors import NoEmbeddingsGenerated, NothingToSync
from socadmin.persistence.repos import assets as assets_repo
from socadmin.persistence.repos import knowledge as knowledge_repo
from socadmin.services import knowledge
from socadmin.services.knowledge import DocumentInput
from socadmin.tests.utils.fakes import FakeSession, ScriptedEmbedder, make_asset


@pytest.fixture
def stored(monkeypatch) -> list:
    entries: list = []

    async def _insert(_session, batch):
        entries.extend(batch)
        return []

    monkeypatch.setattr(knowledge_repo, "insert_entries", _insert)
    return entries


@pytest.mark.asyncio
async def test_embed_documents_chunks_and_tags_metadata(stored) -> None:
    session = FakeSession()
    docs = [DocumentInput(content="a" * 2500, metadata={"title": "runbook"}), DocumentInput(content="short")]

    result = await knowledge.embed_documents(session, docs, client_id="client-1", embedder=ScriptedEmbedder())

    assert result.chunks_processed == 4
    assert result.documents_processed == 2
    assert result.message == "Successfully embedded 4 chunks from 2 documents"
    assert [len(entry.content) for entry in stored] == [1000, 1000, 700, 5]
    assert stored[1].metadata == {"title": "runbook", "chunkIndex": 1, "totalChunks": 3, "originalLength": 2500}
    assert all(entry.client_id == "client-1" for entry in stored)
    assert session.commits == 1


@pytest.mark.asyncio
async def test_failed_chunks_are_skipped(stored) -> None:
    session = FakeSession()
    docs = [DocumentInput(content="one"), DocumentInput(content="two"), DocumentInput(content="three")]

    result = await knowledge.embed_documents(
        session, docs, client_id="client-1", embedder=ScriptedEmbedder(fail_on={2})
    )

    assert result.chunks_processed == 2
    assert result.documents_processed == 3
    assert [entry.content for entry in stored] == ["one", "three"]


@pytest.mark.asyncio
async def test_all_chunks_failing_stores_nothing(stored) -> None:
    session = FakeSession()

    with pytest.raises(NoEmbeddingsGenerated, match="No valid embeddings could be generated"):
        await knowledge.embed_documents(
            session, [DocumentInput(content="one")], client_id="client-1", embedder=ScriptedEmbedder(fail_on={1})
        )

    assert stored == []
    assert session.commits == 0


@pytest.mark.asyncio
async def test_embed_documents_requires_documents_and_client(stored) -> None:
    with pytest.raises(ValueError, match="Documents array is required"):
        await knowledge.embed_documents(FakeSession(), [], client_id="client-1", embedder=ScriptedEmbedder())
    with pytest.raises(ValueError, match="Client ID is required"):
        await knowledge.embed_documents(
            FakeSession(), [DocumentInput(content="x")], client_id="", embedder=ScriptedEmbedder()
        )


def test_upload_documents_splits_and_tags() -> None:
    docs = knowledge.upload_documents("first\n\n\nsecond", client_name="Acme")
    assert [doc.content for doc in docs] == ["first", "second"]
    assert docs[1].metadata["source"] == "manual_upload"
    assert docs[1].metadata["documentIndex"] == 1
    assert docs[1].metadata["clientName"] == "Acme"
    assert "uploadedAt" in docs[0].metadata


def test_format_vulnerability_fills_defaults() -> None:
    asset = make_asset(name="web-01", ip_address="10.0.0.10")
    text = knowledge.format_vulnerability(asset, {"title": "Open SMB share", "cve": "CVE-2020-0796"})
    assert text.splitlines() == [
        "Asset: web-01 (10.0.0.10)",
        "Vulnerability: Open SMB share",
        "Severity: Unknown",
        "Status: Open",
        "Description: No description",
        "CVE: CVE-2020-0796",
        "CVSS Score: N/A",
        "Remediation: No remediation info",
    ]


@pytest.mark.asyncio
async def test_sync_vulnerabilities_embeds_one_entry_per_finding(monkeypatch, stored) -> None:
    assets = [
        make_asset(name="web-01", vulnerabilities=[{"name": "Log4Shell", "severity": "critical"}, "junk"]),
        make_asset(name="db-01", vulnerabilities=[{"name": "Weak TLS", "severity": "medium"}]),
        make_asset(name="printer"),
    ]

    async def _list_assets(_session, client_id):
        assert client_id == "client-1"
        return assets

    monkeypatch.setattr(assets_repo, "list_assets", _list_assets)
    session = FakeSession()

    result = await knowledge.sync_vulnerabilities(
        session, client_id="client-1", client_name="Acme", embedder=ScriptedEmbedder()
    )

    assert result.chunks_processed == 2
    assert result.documents_processed == 2
    assert stored[0].metadata["source"] == "vulnerability_sync"
    assert stored[0].metadata["vulnerability_name"] == "Log4Shell"
    assert stored[1].metadata["asset_name"] == "db-01"
    assert session.commits == 1


@pytest.mark.asyncio
async def test_sync_without_assets_or_findings(monkeypatch, stored) -> None:
    found: list = []

    async def _list_assets(_session, _client_id):
        return found

    monkeypatch.setattr(assets_repo, "list_assets", _list_assets)

    with pytest.raises(NothingToSync, match="No assets found for this client"):
        await knowledge.sync_vulnerabilities(FakeSession(), client_id="client-1", embedder=ScriptedEmbedder())

    found.append(make_asset())
    with pytest.raises(NothingToSync, match="No vulnerabilities found to sync"):
        await knowledge.sync_vulnerabilities(FakeSession(), client_id="client-1", embedder=ScriptedEmbedder())
