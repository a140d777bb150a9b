from __future__ import annotations

from typing import Any, TypedDict


class ChatState(TypedDict, total=False):
    client_id: str | None
    user_message: str
    history: list[dict[str, Any]]
    query_embedding: list[float]
    retrieved: list[dict[str, Any]]
    answer: str
    has_context: bool
    timings_ms: dict[str, float]
