from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable
from uuid import uuid4

from sqlalchemy import delete, func, literal, select
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.domain.models import KnowledgeEntry
from socadmin.persistence.guards import client_predicate


@dataclass(frozen=True)
class NewKnowledgeEntry:
    content: str
    metadata: dict[str, Any]
    embedding: list[float]
    client_id: str | None


@dataclass(frozen=True)
class KnowledgeHit:
    id: str
    content: str
    metadata: dict[str, Any]
    client_id: str | None
    similarity: float


async def insert_entries(session: AsyncSession, entries: Iterable[NewKnowledgeEntry]) -> list[KnowledgeEntry]:
    rows = [
        KnowledgeEntry(
            id=uuid4().hex,
            content=entry.content,
            metadata_json=entry.metadata,
            embedding=entry.embedding,
            client_id=entry.client_id,
        )
        for entry in entries
    ]
    session.add_all(rows)
    await session.flush()
    return rows


async def search(
    session: AsyncSession,
    query_embedding: list[float],
    *,
    threshold: float,
    top_k: int,
    client_id: str | None,
) -> list[KnowledgeHit]:
    # Use cosine distance from pgvector; lower is more similar.
    distance_expr = KnowledgeEntry.embedding.cosine_distance(query_embedding)
    similarity_expr = literal(1.0) - distance_expr
    stmt = select(
        KnowledgeEntry.id,
        KnowledgeEntry.content,
        KnowledgeEntry.metadata_json,
        KnowledgeEntry.client_id,
        similarity_expr.label("similarity"),
    ).where(similarity_expr > threshold)
    if client_id is not None:
        stmt = stmt.where(client_predicate(KnowledgeEntry, client_id))
    else:
        stmt = stmt.where(KnowledgeEntry.client_id.is_(None))
    # Secondary ordering keeps tie-breaking deterministic.
    stmt = stmt.order_by(distance_expr.asc(), KnowledgeEntry.id.asc()).limit(max(0, int(top_k)))
    result = await session.execute(stmt)
    return [
        KnowledgeHit(
            id=row.id,
            content=row.content,
            metadata=row.metadata_json or {},
            client_id=row.client_id,
            similarity=float(row.similarity),
        )
        for row in result.all()
    ]


async def clear(session: AsyncSession, client_id: str) -> int:
    result = await session.execute(delete(KnowledgeEntry).where(client_predicate(KnowledgeEntry, client_id)))
    return int(result.rowcount or 0)


async def count(session: AsyncSession, client_id: str) -> int:
    result = await session.execute(
        select(func.count()).select_from(KnowledgeEntry).where(client_predicate(KnowledgeEntry, client_id))
    )
    return int(result.scalar() or 0)
