from __future__ import annotations

import logging
import time

from langgraph.graph import END, StateGraph
from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.agent.prompts import (
    NO_RESPONSE_FALLBACK,
    build_context_block,
    build_messages,
    build_system_prompt,
)
from socadmin.core.errors import KnowledgeStoreError
from socadmin.domain.state import ChatState
from socadmin.ingestion.embeddings import EmbeddingClient
from socadmin.providers.llm.base import ChatProvider
from socadmin.services.knowledge import search_knowledge

logger = logging.getLogger(__name__)


def build_graph(
    *,
    embedder: EmbeddingClient,
    llm: ChatProvider,
    session: AsyncSession,
    threshold: float,
    top_k: int,
    history_window: int,
):
    graph = StateGraph(ChatState)

    async def embed_query(state: ChatState) -> dict:
        started = time.monotonic()
        embedding = await embedder.embed(state["user_message"])
        timings = dict(state.get("timings_ms") or {})
        timings["embedding"] = (time.monotonic() - started) * 1000.0
        return {"query_embedding": embedding, "timings_ms": timings}

    async def retrieve(state: ChatState) -> dict:
        started = time.monotonic()
        try:
            hits = await search_knowledge(
                session,
                state["query_embedding"],
                client_id=state.get("client_id"),
                threshold=threshold,
                top_k=top_k,
            )
        except KnowledgeStoreError as exc:
            # A broken knowledge base degrades to an answer without context.
            logger.error("knowledge_search_failed client_id=%s", state.get("client_id"), exc_info=exc)
            await session.rollback()
            hits = []
        retrieved = [
            {"id": hit.id, "content": hit.content, "metadata": hit.metadata, "similarity": hit.similarity}
            for hit in hits
        ]
        logger.info("knowledge_search_done client_id=%s found=%s", state.get("client_id"), len(retrieved))
        timings = dict(state.get("timings_ms") or {})
        timings["retrieval"] = (time.monotonic() - started) * 1000.0
        return {"retrieved": retrieved, "timings_ms": timings}

    async def generate(state: ChatState) -> dict:
        started = time.monotonic()
        context = build_context_block(state.get("retrieved") or [])
        messages = build_messages(
            build_system_prompt(context),
            state.get("history") or [],
            state["user_message"],
            history_window,
        )
        content = await llm.complete(messages)
        timings = dict(state.get("timings_ms") or {})
        timings["generation"] = (time.monotonic() - started) * 1000.0
        return {"answer": content or NO_RESPONSE_FALLBACK, "has_context": bool(context), "timings_ms": timings}

    graph.add_node("embed_query", embed_query)
    graph.add_node("retrieve", retrieve)
    graph.add_node("generate", generate)

    graph.set_entry_point("embed_query")
    graph.add_edge("embed_query", "retrieve")
    graph.add_edge("retrieve", "generate")
    graph.add_edge("generate", END)

    return graph.compile()


async def run_chat_graph(
    *,
    embedder: EmbeddingClient,
    llm: ChatProvider,
    session: AsyncSession,
    state: ChatState,
    threshold: float,
    top_k: int,
    history_window: int,
) -> ChatState:
    graph = build_graph(
        embedder=embedder,
        llm=llm,
        session=session,
        threshold=threshold,
        top_k=top_k,
        history_window=history_window,
    )
    return await graph.ainvoke(state)
