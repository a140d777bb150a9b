from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.core.config import get_settings
from socadmin.core.errors import (
    EmbeddingUnavailable,
    InvalidEmbedding,
    KnowledgeStoreError,
    NoEmbeddingsGenerated,
    NothingToSync,
)
from socadmin.domain.models import Asset
from socadmin.ingestion.chunking import chunk_text, split_documents
from socadmin.ingestion.embeddings import EmbeddingClient, close_embedding_client, get_embedding_client
from socadmin.persistence.repos import assets as assets_repo
from socadmin.persistence.repos import knowledge as knowledge_repo
from socadmin.persistence.repos.knowledge import KnowledgeHit, NewKnowledgeEntry
from socadmin.services.mutations import mutation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentInput:
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IngestResult:
    chunks_processed: int
    documents_processed: int

    @property
    def message(self) -> str:
        return (
            f"Successfully embedded {self.chunks_processed} chunks "
            f"from {self.documents_processed} documents"
        )


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _embed_one(embedder: EmbeddingClient, text: str, *, label: str) -> list[float] | None:
    # One bad item must not sink the batch; callers count what survived.
    try:
        return await embedder.embed(text)
    except (EmbeddingUnavailable, InvalidEmbedding) as exc:
        logger.warning("knowledge_embed_skipped item=%s error=%s", label, exc)
        return None


async def _store(session: AsyncSession, entries: list[NewKnowledgeEntry]) -> None:
    async with mutation(session, "store embeddings"):
        await knowledge_repo.insert_entries(session, entries)


async def embed_documents(
    session: AsyncSession,
    documents: Iterable[DocumentInput],
    *,
    client_id: str,
    ollama_url: str | None = None,
    embedder: EmbeddingClient | None = None,
) -> IngestResult:
    """Chunk, embed and store documents for one tenant.

    Chunks are embedded sequentially. A chunk whose embedding fails is
    logged and skipped; the call fails only when nothing could be embedded.
    All surviving chunks are written in a single transaction.
    """
    docs = list(documents)
    if not docs:
        raise ValueError("Documents array is required")
    if not client_id:
        raise ValueError("Client ID is required")

    settings = get_settings()
    owns_embedder = embedder is None
    embedder = embedder or get_embedding_client(ollama_url)
    entries: list[NewKnowledgeEntry] = []
    try:
        for doc_index, doc in enumerate(docs):
            chunks = chunk_text(doc.content, settings.chunk_size, settings.chunk_overlap)
            logger.info("knowledge_document_chunked doc=%s chunks=%s", doc_index, len(chunks))
            for chunk_index, chunk in enumerate(chunks):
                embedding = await _embed_one(embedder, chunk, label=f"{doc_index}:{chunk_index}")
                if embedding is None:
                    continue
                entries.append(
                    NewKnowledgeEntry(
                        content=chunk,
                        metadata={
                            **doc.metadata,
                            "chunkIndex": chunk_index,
                            "totalChunks": len(chunks),
                            "originalLength": len(doc.content),
                        },
                        embedding=embedding,
                        client_id=client_id,
                    )
                )
    finally:
        if owns_embedder:
            await close_embedding_client(embedder)

    if not entries:
        raise NoEmbeddingsGenerated("No valid embeddings could be generated")
    await _store(session, entries)
    logger.info("knowledge_embedded client_id=%s chunks=%s documents=%s", client_id, len(entries), len(docs))
    return IngestResult(chunks_processed=len(entries), documents_processed=len(docs))


def upload_documents(raw_text: str, *, client_name: str | None = None) -> list[DocumentInput]:
    uploaded_at = _utcnow_iso()
    return [
        DocumentInput(
            content=content,
            metadata={
                "source": "manual_upload",
                "uploadedAt": uploaded_at,
                "documentIndex": index,
                "clientName": client_name or "Unknown",
            },
        )
        for index, content in enumerate(split_documents(raw_text))
    ]


def _vuln_name(vuln: dict[str, Any]) -> str:
    return vuln.get("name") or vuln.get("title") or "Unknown"


def format_vulnerability(asset: Asset, vuln: dict[str, Any]) -> str:
    return "\n".join(
        [
            f"Asset: {asset.name} ({asset.ip_address})",
            f"Vulnerability: {_vuln_name(vuln)}",
            f"Severity: {vuln.get('severity') or 'Unknown'}",
            f"Status: {vuln.get('status') or 'Open'}",
            f"Description: {vuln.get('description') or 'No description'}",
            f"CVE: {vuln.get('cve') or 'N/A'}",
            f"CVSS Score: {vuln.get('cvss_score') or 'N/A'}",
            f"Remediation: {vuln.get('remediation') or 'No remediation info'}",
        ]
    )


def vulnerability_documents(
    assets: Iterable[Asset], *, client_name: str | None = None, synced_at: str | None = None
) -> list[DocumentInput]:
    synced_at = synced_at or _utcnow_iso()
    documents: list[DocumentInput] = []
    for asset in assets:
        vulns = asset.vulnerabilities_json if isinstance(asset.vulnerabilities_json, list) else []
        for vuln in vulns:
            if not isinstance(vuln, dict):
                continue
            documents.append(
                DocumentInput(
                    content=format_vulnerability(asset, vuln),
                    metadata={
                        "source": "vulnerability_sync",
                        "asset_id": asset.id,
                        "asset_name": asset.name,
                        "asset_ip": asset.ip_address,
                        "vulnerability_name": _vuln_name(vuln),
                        "severity": vuln.get("severity") or "Unknown",
                        "cve": vuln.get("cve") or "N/A",
                        "syncedAt": synced_at,
                        "clientName": client_name or "Unknown",
                    },
                )
            )
    return documents


async def sync_vulnerabilities(
    session: AsyncSession,
    *,
    client_id: str,
    client_name: str | None = None,
    ollama_url: str | None = None,
    embedder: EmbeddingClient | None = None,
) -> IngestResult:
    assets = await assets_repo.list_assets(session, client_id)
    if not assets:
        raise NothingToSync("No assets found for this client")
    documents = vulnerability_documents(assets, client_name=client_name)
    if not documents:
        raise NothingToSync("No vulnerabilities found to sync")

    # Vulnerability records are short; each one is stored as a single entry.
    owns_embedder = embedder is None
    embedder = embedder or get_embedding_client(ollama_url)
    entries: list[NewKnowledgeEntry] = []
    try:
        for index, doc in enumerate(documents):
            embedding = await _embed_one(embedder, doc.content, label=str(index))
            if embedding is None:
                continue
            entries.append(
                NewKnowledgeEntry(content=doc.content, metadata=doc.metadata, embedding=embedding, client_id=client_id)
            )
    finally:
        if owns_embedder:
            await close_embedding_client(embedder)

    if not entries:
        raise NoEmbeddingsGenerated("No valid embeddings could be generated")
    await _store(session, entries)
    logger.info("knowledge_vulns_synced client_id=%s entries=%s", client_id, len(entries))
    return IngestResult(chunks_processed=len(entries), documents_processed=len(documents))


async def clear_knowledge(session: AsyncSession, client_id: str) -> int:
    async with mutation(session, "clear knowledge base"):
        removed = await knowledge_repo.clear(session, client_id)
    logger.info("knowledge_cleared client_id=%s removed=%s", client_id, removed)
    return removed


async def count_knowledge(session: AsyncSession, client_id: str) -> int:
    return await knowledge_repo.count(session, client_id)


async def search_knowledge(
    session: AsyncSession,
    query_embedding: list[float],
    *,
    client_id: str | None,
    threshold: float | None = None,
    top_k: int | None = None,
) -> list[KnowledgeHit]:
    settings = get_settings()
    try:
        return await knowledge_repo.search(
            session,
            query_embedding,
            threshold=settings.rag_match_threshold if threshold is None else threshold,
            top_k=settings.rag_match_count if top_k is None else top_k,
            client_id=client_id,
        )
    except SQLAlchemyError as exc:
        raise KnowledgeStoreError("Knowledge search failed") from exc
