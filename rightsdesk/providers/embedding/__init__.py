"""Embedding provider implementations.

Embeddings convert text into numeric vectors that capture semantic meaning.
Chunk vectors are stored by the document store and compared against query
vectors during semantic search.

Two implementations of IEmbeddingProvider (listed in typical priority order):
    1. OpenAIEmbeddingProvider: text-embedding-3-small (1536 dims).
       Requires an API key.
    2. NomicEmbeddingProvider: nomic-embed-text via Ollama (768 dims).
       Free and local, but requires a running Ollama server.
"""

from rightsdesk.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from rightsdesk.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider", "NomicEmbeddingProvider"]
