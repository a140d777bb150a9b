from __future__ import annotations

from socadmin.core.config import get_settings
from socadmin.core.errors import ProviderConfigError
from socadmin.providers.llm.base import ChatProvider
from socadmin.providers.llm.fake import FakeChatProvider
from socadmin.providers.llm.ollama import OllamaChatProvider


def get_chat_provider(ollama_url: str | None = None) -> ChatProvider:
    settings = get_settings()
    provider = (settings.llm_provider or "ollama").lower()

    if provider == "fake":
        return FakeChatProvider()
    if provider != "ollama":
        raise ProviderConfigError(f"Unsupported LLM provider: {settings.llm_provider}")
    return OllamaChatProvider(
        base_url=ollama_url or settings.ollama_url,
        model=settings.ollama_chat_model,
        timeout_s=settings.ollama_timeout_s,
    )
