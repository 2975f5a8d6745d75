"""Shared pytest fixtures for the rightsdesk test suite."""

from __future__ import annotations

import hashlib
import struct
from pathlib import Path
from typing import Any

import pytest

from rightsdesk.interfaces.embedding_provider import IEmbeddingProvider
from rightsdesk.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from rightsdesk.services.embedding_client import EmbeddingClient
from rightsdesk.services.ingestion.chunker import TextChunker
from rightsdesk.services.ingestion.ingestion_service import IngestionService
from rightsdesk.services.search.keyword_search import KeywordSearch
from rightsdesk.services.search.search_service import SearchService
from rightsdesk.services.search.semantic_search import SemanticSearch

_EMBEDDING_DIM = 16


# ---------------------------------------------------------------------------
# Sample content
# ---------------------------------------------------------------------------

_CHARTER_TEXT = (
    "Every patient has the right to emergency medical care without advance payment. "
    "A hospital may not refuse treatment to an accident victim while police formalities "
    "are pending. Patients have the right to see their medical records and to receive "
    "copies of them within a reasonable time. Informed consent must be taken before any "
    "major procedure, in a language the patient understands. A patient may seek a second "
    "opinion from a doctor of their choice."
)

_REFUND_TEXT = (
    "The hospital billing policy sets out how deposits are handled. A refund of any "
    "unused deposit is issued within thirty days of discharge. Itemised bills must be "
    "provided on request and must list every consumable separately."
)


@pytest.fixture
def charter_text() -> str:
    """A short patients' rights charter, several sentences long."""
    return _CHARTER_TEXT


@pytest.fixture
def refund_text() -> str:
    """A short hospital billing policy unrelated to the charter."""
    return _REFUND_TEXT


# ---------------------------------------------------------------------------
# Deterministic embeddings
# ---------------------------------------------------------------------------


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic fixed-length vector by hashing *text*.

    Uses SHA-256 to hash the text, reads the digest as signed bytes and
    normalises to unit length.  Same text always produces the same vector,
    so a query identical to a chunk scores similarity 1.0 against it.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    # Extend the digest to cover `dim` bytes
    raw = digest
    while len(raw) < dim:
        raw += hashlib.sha256(raw).digest()
    values = [float(v) for v in struct.unpack(f"<{dim}b", raw[:dim])]
    # Normalise to unit length
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests.

    Records every text it was asked to embed in :attr:`calls`.
    """

    def __init__(self, dimension: int = _EMBEDDING_DIM) -> None:
        self._dimension = dimension
        self.calls: list[str] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.extend(texts)
        return [_hash_to_vector(t, self._dimension) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        return _hash_to_vector(text, self._dimension)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


@pytest.fixture
def hash_vector():
    """Expose the hash-to-vector function used by the mock provider."""
    return _hash_to_vector


@pytest.fixture
def embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def embedding_provider_factory():
    """Build extra mock providers, e.g. with a different dimension."""
    return MockEmbeddingProvider


@pytest.fixture
def embedding_client(embedding_provider: MockEmbeddingProvider) -> EmbeddingClient:
    return EmbeddingClient(embedding_provider, timeout_s=5.0, concurrency=4)


# ---------------------------------------------------------------------------
# Store and services
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "corpus.db"


@pytest.fixture
async def store(db_path: Path) -> SQLiteDocumentStore:
    """A freshly initialised SQLite store in a temporary directory."""
    s = SQLiteDocumentStore(db_path=db_path)
    await s.initialize()
    return s


@pytest.fixture
def chunker() -> TextChunker:
    return TextChunker(max_tokens=40)


@pytest.fixture
def ingestion_service(
    store: SQLiteDocumentStore,
    chunker: TextChunker,
    embedding_client: EmbeddingClient,
) -> IngestionService:
    return IngestionService(
        store=store,
        chunker=chunker,
        embedding_client=embedding_client,
        min_content_length=50,
    )


@pytest.fixture
def search_service(
    store: SQLiteDocumentStore,
    embedding_client: EmbeddingClient,
) -> SearchService:
    return SearchService(
        semantic=SemanticSearch(embedding_client, store),
        keyword=KeywordSearch(store),
        default_limit=10,
        max_limit=100,
        default_threshold=0.3,
    )


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Return a resolved configuration dict with the built-in defaults."""
    return {
        "chunking": {"max_tokens": 500},
        "ingestion": {"min_content_length": 50, "title_max_length": 200},
        "search": {
            "default_limit": 10,
            "max_limit": 100,
            "default_threshold": 0.3,
            "semantic_weight": 2,
            "keyword_snippet_chars": 500,
        },
    }
