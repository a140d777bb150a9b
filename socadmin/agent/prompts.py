from __future__ import annotations

from typing import Any


NO_RESPONSE_FALLBACK = "I apologize, but I could not generate a response."
ERROR_FALLBACK = (
    "I apologize, but I encountered an error processing your request. "
    "Please ensure Ollama is running and try again."
)

_CONTEXT_HEADER = "Relevant information from the knowledge base:\n\n"


def build_context_block(retrieved: list[dict[str, Any]]) -> str:
    if not retrieved:
        return ""
    entries = [f"{idx}. {item.get('content', '')}\n" for idx, item in enumerate(retrieved, start=1)]
    return _CONTEXT_HEADER + "\n".join(entries) + "\n\n"


def build_system_prompt(context: str) -> str:
    if context:
        guidance = (
            "Use the provided context to answer questions when relevant, "
            "but you can also use your general knowledge."
        )
    else:
        guidance = "Answer based on your general knowledge."
    return (
        f"You are a helpful AI assistant with access to a knowledge base. {guidance}\n\n"
        f"{context}\n\n"
        "Please provide a comprehensive and helpful response."
    )


def recent_history(history: list[dict[str, Any]], window: int) -> list[dict[str, str]]:
    if window <= 0:
        return []
    turns = [
        {"role": str(msg["role"]), "content": str(msg["content"])}
        for msg in history
        if isinstance(msg, dict) and "role" in msg and "content" in msg
    ]
    return turns[-window:]


def build_messages(
    system_prompt: str,
    history: list[dict[str, Any]],
    user_message: str,
    window: int,
) -> list[dict[str, str]]:
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend(recent_history(history, window))
    messages.append({"role": "user", "content": user_message})
    return messages
