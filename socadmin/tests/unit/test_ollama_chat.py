from __future__ import annotations

import json

import httpx
import pytest

from socadmin.core.config import get_settings
from socadmin.core.errors import ChatUnavailable, ProviderConfigError
from socadmin.providers.llm.factory import get_chat_provider
from socadmin.providers.llm.fake import FakeChatProvider
from socadmin.providers.llm.ollama import OllamaChatProvider

MESSAGES = [{"role": "system", "content": "be brief"}, {"role": "user", "content": "hi"}]


def _provider(handler) -> OllamaChatProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OllamaChatProvider(base_url="http://ollama:11434", model="llama2", client=client)


@pytest.mark.asyncio
async def test_chat_sends_non_streaming_request_and_returns_content() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["payload"] = json.loads(request.read())
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "hello there"}})

    answer = await _provider(handler).complete(MESSAGES)

    assert answer == "hello there"
    assert seen["url"] == "http://ollama:11434/api/chat"
    assert seen["payload"] == {"model": "llama2", "messages": MESSAGES, "stream": False}


@pytest.mark.asyncio
async def test_chat_without_content_returns_none() -> None:
    answer = await _provider(lambda _request: httpx.Response(200, json={"done": True})).complete(MESSAGES)
    assert answer is None


@pytest.mark.asyncio
async def test_chat_error_status_raises() -> None:
    with pytest.raises(ChatUnavailable, match="503"):
        await _provider(lambda _request: httpx.Response(503, text="busy")).complete(MESSAGES)


def test_factory_selects_fake_provider(monkeypatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "fake")
    get_settings.cache_clear()
    assert isinstance(get_chat_provider(), FakeChatProvider)


def test_factory_rejects_unknown_provider(monkeypatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "openai")
    get_settings.cache_clear()
    with pytest.raises(ProviderConfigError):
        get_chat_provider()
