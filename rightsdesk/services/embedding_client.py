"""Embedding client: timeouts and bounded parallelism around a provider.

:class:`EmbeddingClient` is the only place the services touch an
:class:`IEmbeddingProvider`.  It adds what the provider contract leaves
out:

* a per-call timeout (``asyncio.wait_for``), reported as
  :class:`EmbeddingError` rather than an open-ended hang;
* parallel chunk embedding with at most ``concurrency`` calls in flight,
  returning vectors in chunk order regardless of completion order;
* a dimension check on every vector against the provider's declared size.

Each :meth:`embed_chunks` call creates its own semaphore, so concurrent
ingestions never throttle each other.
"""

from __future__ import annotations

import asyncio

import structlog

from rightsdesk.interfaces.embedding_provider import IEmbeddingProvider
from rightsdesk.utils.concurrency import first_exception, throttled_gather
from rightsdesk.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)


class EmbeddingClient:
    """Wraps an embedding provider with timeouts and ordered parallel calls.

    Parameters
    ----------
    provider:
        The embedding backend.
    timeout_s:
        Upper bound in seconds on a single provider call.
    concurrency:
        Maximum number of chunk embedding calls in flight per document.
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        timeout_s: float = 30.0,
        concurrency: int = 4,
    ) -> None:
        self._provider = provider
        self._timeout_s = timeout_s
        self._concurrency = max(1, concurrency)

    @property
    def provider_name(self) -> str:
        return self._provider.get_provider_name()

    @property
    def dimension(self) -> int:
        return self._provider.get_dimension()

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single search query."""
        return await self._embed_one(text)

    async def embed_chunks(self, chunks: list[str]) -> list[list[float]]:
        """Embed every chunk, failing the whole batch if any chunk fails.

        Returns
        -------
        list[list[float]]
            One vector per chunk, ``result[i]`` belonging to ``chunks[i]``.

        Raises
        ------
        EmbeddingError
            The first failure by chunk position, after all calls settle.
        """
        if not chunks:
            return []

        semaphore = asyncio.Semaphore(self._concurrency)
        results = await throttled_gather(
            [self._embed_one(chunk) for chunk in chunks],
            semaphore=semaphore,
        )
        error = first_exception(results)
        if error is not None:
            logger.warning(
                "chunk_embedding_failed",
                provider=self.provider_name,
                chunks=len(chunks),
                error=str(error),
            )
            raise error
        return results  # type: ignore[return-value]

    async def _embed_one(self, text: str) -> list[float]:
        try:
            vector = await asyncio.wait_for(
                self._provider.embed_single(text), timeout=self._timeout_s
            )
        except asyncio.TimeoutError as exc:
            raise EmbeddingError(
                message=f"Embedding call timed out after {self._timeout_s}s",
                provider_name=self.provider_name,
            ) from exc

        expected = self._provider.get_dimension()
        if len(vector) != expected:
            raise EmbeddingError(
                message=(
                    "Invalid response from embedding API: "
                    f"expected dimension {expected}, got {len(vector)}"
                ),
                provider_name=self.provider_name,
            )
        return vector
