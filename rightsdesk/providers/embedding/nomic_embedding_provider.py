"""Nomic embedding provider adapter (local/free via Ollama).

Calls Ollama's native ``/api/embed`` endpoint to implement
:class:`IEmbeddingProvider` using ``nomic-embed-text`` (768 dimensions).
Runs locally with no API key required.

The JSON response is decoded into :class:`_OllamaEmbedResponse`, so a
malformed payload fails as one typed parse error instead of a ``KeyError``
somewhere downstream.
"""

from __future__ import annotations

import httpx
import structlog
from pydantic import BaseModel, ValidationError as PydanticValidationError

from rightsdesk.config.settings import Settings
from rightsdesk.interfaces.embedding_provider import IEmbeddingProvider
from rightsdesk.utils.errors import EmbeddingError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_OLLAMA_BATCH_LIMIT = 512
_DEFAULT_TIMEOUT = 60.0

_MODEL_DIMENSIONS: dict[str, int] = {
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "all-minilm": 384,
}


class _OllamaEmbedResponse(BaseModel):
    model: str = ""
    embeddings: list[list[float]]


class NomicEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by ``nomic-embed-text`` served via Ollama.

    Produces 768-dimensional vectors.  Handles automatic batching for
    inputs exceeding 512 texts per call.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._model = settings.nomic_embedding_model or "nomic-embed-text"
        self._dimension = _MODEL_DIMENSIONS.get(self._model, 768)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(_DEFAULT_TIMEOUT),
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Automatically splits into batches of 512 for the Ollama backend.
        """
        if not texts:
            return []

        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), _OLLAMA_BATCH_LIMIT):
            batch = texts[start : start + _OLLAMA_BATCH_LIMIT]
            payload = await self._post_embed(batch)
            if len(payload.embeddings) != len(batch):
                raise EmbeddingError(
                    message=(
                        "Invalid response from embedding API: "
                        f"expected {len(batch)} vectors, got {len(payload.embeddings)}"
                    ),
                    provider_name=self.get_provider_name(),
                )
            for vector in payload.embeddings:
                if len(vector) != self._dimension:
                    raise EmbeddingError(
                        message=(
                            "Invalid response from embedding API: "
                            f"expected dimension {self._dimension}, got {len(vector)}"
                        ),
                        provider_name=self.get_provider_name(),
                    )
            all_embeddings.extend(payload.embeddings)
            logger.info(
                "nomic_embedding_batch",
                model=self._model,
                batch_size=len(batch),
            )
        return all_embeddings

    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        """Return 768 for nomic-embed-text."""
        return self._dimension

    def get_provider_name(self) -> str:
        return "nomic_embedding"

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama server is reachable."""
        if not self._base_url:
            return False
        try:
            response = httpx.get(f"{self._base_url}/api/tags", timeout=3.0)
            return response.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _post_embed(self, batch: list[str]) -> _OllamaEmbedResponse:
        try:
            response = await self._client.post(
                f"{self._base_url}/api/embed",
                json={"model": self._model, "input": batch},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 429:
                raise RateLimitError(
                    message="Ollama rate limit exceeded",
                    provider_name=self.get_provider_name(),
                ) from exc
            raise EmbeddingError(
                message=f"Nomic/Ollama embedding API error: HTTP {exc.response.status_code}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise EmbeddingError(
                message=f"Nomic/Ollama embedding API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        try:
            return _OllamaEmbedResponse.model_validate_json(response.content)
        except PydanticValidationError as exc:
            raise EmbeddingError(
                message="Invalid response from embedding API",
                provider_name=self.get_provider_name(),
            ) from exc
