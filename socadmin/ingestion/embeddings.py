from __future__ import annotations

import hashlib
import logging
import math
import re
from numbers import Real
from typing import Any, Protocol

import httpx

from socadmin.core.config import EMBED_DIM, get_settings
from socadmin.core.errors import EmbeddingUnavailable, InvalidEmbedding, ProviderConfigError

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[A-Za-z0-9_]+")


class EmbeddingClient(Protocol):
    async def embed(self, text: str) -> list[float]:
        ...


def _hash_token(token: str) -> tuple[int, float]:
    digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
    # Hash to a stable index within the fixed embedding dimension.
    idx = int(digest[:8], 16) % EMBED_DIM
    sign = 1.0 if int(digest[8:12], 16) % 2 == 0 else -1.0
    magnitude = (int(digest[12:20], 16) % 1000) / 1000.0
    return idx, sign * (0.2 + magnitude)


def hash_embed(text: str) -> list[float]:
    # Always allocate the full embedding dimension to match the DB schema.
    vector = [0.0] * EMBED_DIM
    tokens = _TOKEN_RE.findall(text.lower())
    if not tokens:
        return vector

    for token in tokens:
        idx, value = _hash_token(token)
        vector[idx] += value

    norm = math.sqrt(sum(v * v for v in vector))
    if norm == 0:
        return vector
    return [v / norm for v in vector]


def validate_embedding(payload: Any) -> list[float]:
    # Accept only a flat numeric list of the configured dimension.
    if not isinstance(payload, dict):
        raise InvalidEmbedding("embedding response is not a JSON object")
    embedding = payload.get("embedding")
    if not isinstance(embedding, list) or not embedding:
        raise InvalidEmbedding("embedding response lacks a numeric array")
    if any(isinstance(v, bool) or not isinstance(v, Real) for v in embedding):
        raise InvalidEmbedding("embedding array contains non-numeric values")
    if len(embedding) != EMBED_DIM:
        raise InvalidEmbedding(f"embedding dimension mismatch; expected {EMBED_DIM}, got {len(embedding)}")
    return [float(v) for v in embedding]


class HashEmbeddingClient:
    """Deterministic offline embedder for development and tests."""

    async def embed(self, text: str) -> list[float]:
        return hash_embed(text)


class OllamaEmbeddingClient:
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
        # Reuse a single client per embedder for connection pooling across a batch.
        self._client = httpx.AsyncClient(timeout=self._timeout_s)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "OllamaEmbeddingClient":
        return self

    async def __aexit__(self, *_exc_info) -> None:
        await self.aclose()

    async def embed(self, text: str) -> list[float]:
        url = f"{self._base_url}/api/embeddings"
        try:
            response = await self._get_client().post(url, json={"model": self._model, "prompt": text})
        except httpx.HTTPError as exc:
            logger.warning("ollama_embedding_unreachable url=%s error=%s", url, exc.__class__.__name__)
            raise EmbeddingUnavailable(f"Embedding service unreachable at {self._base_url}") from exc
        if response.status_code >= 400:
            logger.warning(
                "ollama_embedding_error status=%s body=%s", response.status_code, response.text[:200]
            )
            raise EmbeddingUnavailable(f"Embedding service returned {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise InvalidEmbedding("embedding response is not valid JSON") from exc
        return validate_embedding(payload)


def get_embedding_client(ollama_url: str | None = None) -> EmbeddingClient:
    settings = get_settings()
    provider = (settings.embedding_provider or "ollama").lower()
    if provider == "hash":
        return HashEmbeddingClient()
    if provider != "ollama":
        raise ProviderConfigError(f"Unsupported embedding provider: {settings.embedding_provider}")
    return OllamaEmbeddingClient(
        base_url=ollama_url or settings.ollama_url,
        model=settings.ollama_embed_model,
        timeout_s=settings.ollama_timeout_s,
    )


async def close_embedding_client(client: EmbeddingClient) -> None:
    aclose = getattr(client, "aclose", None)
    if aclose is not None:
        await aclose()
