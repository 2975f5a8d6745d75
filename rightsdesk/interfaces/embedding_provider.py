"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.
Implementations may wrap OpenAI ``text-embedding-3-small`` or Nomic
``nomic-embed-text`` (local via Ollama).  Providers are interchangeable
behind this interface; the rest of the corpus layer only ever sees
``text in, vector out``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider: text-embedding-3-small (requires API key)
#   NomicEmbeddingProvider:  nomic-embed-text via Ollama (local)
# Located in: rightsdesk/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by ingestion and search.

    Vectors are consumed by
    :class:`~rightsdesk.interfaces.document_store.IDocumentStore` for
    chunk storage and query-time similarity search.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.

        Raises
        ------
        rightsdesk.utils.errors.EmbeddingError
            If the embedding API call fails or its response is malformed.
        rightsdesk.utils.errors.RateLimitError
            If the provider rejected the call for rate-limit reasons.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Convenience wrapper around :meth:`embed` for the common single-text
        case (a search query, or one chunk).
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Example values: ``1536`` (OpenAI ``text-embedding-3-small``),
        ``768`` (Nomic ``nomic-embed-text``).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured.

        Must not generate an actual embedding.
        """
