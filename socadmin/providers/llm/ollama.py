from __future__ import annotations

import logging

import httpx

from socadmin.core.errors import ChatUnavailable

logger = logging.getLogger(__name__)


class OllamaChatProvider:
    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        timeout_s: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout_s = timeout_s
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        self._client = httpx.AsyncClient(timeout=self._timeout_s)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def complete(self, messages: list[dict[str, str]]) -> str | None:
        url = f"{self._base_url}/api/chat"
        payload = {"model": self._model, "messages": messages, "stream": False}
        try:
            logger.info("ollama_chat_start model=%s messages=%s", self._model, len(messages))
            response = await self._get_client().post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("ollama_chat_unreachable url=%s error=%s", url, exc.__class__.__name__)
            raise ChatUnavailable(f"Chat service unreachable at {self._base_url}") from exc
        if response.status_code >= 400:
            logger.warning("ollama_chat_error status=%s body=%s", response.status_code, response.text[:200])
            raise ChatUnavailable(f"Chat service returned {response.status_code}")
        try:
            data = response.json()
        except ValueError as exc:
            raise ChatUnavailable("Chat service returned invalid JSON") from exc
        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        # Callers substitute a fixed apology when the model returns nothing usable.
        return content if isinstance(content, str) and content else None
