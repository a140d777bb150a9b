from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from socadmin.agent.graph import run_chat_graph
from socadmin.agent.prompts import ERROR_FALLBACK, NO_RESPONSE_FALLBACK
from socadmin.core.config import get_settings
from socadmin.ingestion.embeddings import EmbeddingClient, close_embedding_client, get_embedding_client
from socadmin.providers.llm.base import ChatProvider
from socadmin.providers.llm.factory import get_chat_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatOutcome:
    status_code: int
    body: dict[str, Any]


async def _close(resource: Any) -> None:
    if resource is None:
        return
    aclose = getattr(resource, "aclose", None)
    if aclose is not None:
        await aclose()


async def answer_chat(
    session: AsyncSession,
    *,
    message: str,
    client_id: str | None,
    history: list[dict[str, Any]] | None = None,
    ollama_url: str | None = None,
    embedder: EmbeddingClient | None = None,
    llm: ChatProvider | None = None,
) -> ChatOutcome:
    """Answer one chat turn with knowledge-base context when available.

    Every failure is folded into a 500 outcome carrying a fixed apology, so
    callers never see an exception from here.
    """
    settings = get_settings()
    owns_embedder = embedder is None
    owns_llm = llm is None
    try:
        embedder = embedder or get_embedding_client(ollama_url)
        llm = llm or get_chat_provider(ollama_url)
        state = await run_chat_graph(
            embedder=embedder,
            llm=llm,
            session=session,
            state={"client_id": client_id, "user_message": message, "history": list(history or [])},
            threshold=settings.rag_match_threshold,
            top_k=settings.rag_match_count,
            history_window=settings.rag_history_window,
        )
    except Exception as exc:  # noqa: BLE001 - the chat boundary always answers
        logger.error("rag_chat_failed client_id=%s", client_id, exc_info=exc)
        return ChatOutcome(
            status_code=500,
            body={"error": str(exc) or exc.__class__.__name__, "response": ERROR_FALLBACK},
        )
    finally:
        if owns_embedder and embedder is not None:
            await close_embedding_client(embedder)
        if owns_llm:
            await _close(llm)

    retrieved = state.get("retrieved") or []
    logger.info("rag_chat_completed client_id=%s documents=%s", client_id, len(retrieved))
    return ChatOutcome(
        status_code=200,
        body={
            "response": state.get("answer") or NO_RESPONSE_FALLBACK,
            "context": {
                "documentsFound": len(retrieved),
                "hasContext": bool(state.get("has_context")),
            },
        },
    )
