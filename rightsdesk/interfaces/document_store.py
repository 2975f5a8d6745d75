"""Abstract base class for corpus document stores.

Defines the contract for persisting documents and their embedded chunks and
for the two query styles hybrid search needs: nearest-neighbour lookup over
chunk embeddings and full-text search over document text.  Implementations
may wrap SQLite, Postgres + pgvector, or any store with both capabilities.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from rightsdesk.models.corpus import (
    Chunk,
    CorpusStats,
    Document,
    SearchFilters,
    SearchResult,
)


# Concrete implementation: SQLiteDocumentStore (rightsdesk/providers/document_store/)
# Embeddings are stored as float32 blobs and scored with numpy; keyword
# search uses an FTS5 virtual table.
class IDocumentStore(ABC):
    """Contract for the corpus document store.

    **Write protocol.**  Ingestion writes in two phases so a network-bound
    embedding step never runs inside a transaction:

    1. :meth:`create_pending_document` inserts the document with status
       ``pending``.  Pending documents are invisible to every query.
    2. :meth:`activate_document` inserts all chunks, indexes the document
       for full-text search and flips it to ``active`` in one transaction.

    A failed ingestion removes its pending row with :meth:`delete_document`;
    rows left behind by a crashed process are removed by
    :meth:`sweep_pending`.

    **Filters.**  Both search methods apply :class:`SearchFilters` with AND
    semantics and only ever return chunks of ``active`` documents.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indexes if they do not exist."""

    @abstractmethod
    async def find_active_by_checksum(self, checksum: str) -> Document | None:
        """Return the active document whose content has *checksum*, if any."""

    @abstractmethod
    async def find_active_by_source_url(self, source_url: str) -> Document | None:
        """Return the active document ingested from *source_url*, if any."""

    @abstractmethod
    async def create_pending_document(self, document: Document) -> None:
        """Insert *document* with status ``pending``.

        Raises
        ------
        rightsdesk.utils.errors.StorageError
            If the insert fails.
        """

    @abstractmethod
    async def activate_document(
        self,
        document_id: str,
        chunks: list[Chunk],
        supersedes: str | None = None,
    ) -> None:
        """Atomically store *chunks* and make the document searchable.

        Parameters
        ----------
        document_id:
            The pending document to activate.
        chunks:
            All chunks of the document, ``chunk_index`` ``0..k-1``.
        supersedes:
            Id of an active document this one replaces.  It is flipped to
            ``inactive`` in the same transaction.

        Raises
        ------
        rightsdesk.utils.errors.ChecksumConflictError
            If another document with the same checksum became active first.
        rightsdesk.utils.errors.StorageError
            For any other failure.  Nothing is written in either case.
        """

    @abstractmethod
    async def delete_document(self, document_id: str) -> bool:
        """Delete a document with its chunks and full-text entry.

        Returns ``False`` if no such document exists.
        """

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Return the document with *document_id* in any status."""

    @abstractmethod
    async def get_chunks(self, document_id: str) -> list[Chunk]:
        """Return the document's chunks ordered by ``chunk_index``."""

    @abstractmethod
    async def semantic_search(
        self,
        query_embedding: list[float],
        filters: SearchFilters,
        limit: int,
        threshold: float,
    ) -> list[SearchResult]:
        """Return chunks with similarity >= *threshold*, best first.

        Parameters
        ----------
        query_embedding:
            The embedded query.  Must match the stored dimension.
        filters:
            Metadata filters applied to the owning document.
        limit:
            Maximum number of chunks to return.
        threshold:
            Minimum similarity in ``[0, 1]``.

        Raises
        ------
        rightsdesk.utils.errors.StorageError
            On dimension mismatch or query failure.
        """

    @abstractmethod
    async def keyword_search(
        self,
        query_text: str,
        filters: SearchFilters,
        limit: int,
        snippet_chars: int = 500,
    ) -> list[SearchResult]:
        """Full-text search over active documents, best first.

        *query_text* uses web-search syntax: implicit AND, ``"quoted
        phrases"``, ``or`` and ``-negation``.  Each hit is a whole document:
        ``chunk_index`` is ``0`` and ``content`` is the first *snippet_chars*
        characters of the document text.
        """

    @abstractmethod
    async def sweep_pending(self, older_than: datetime) -> int:
        """Delete pending documents created before *older_than*.

        Returns the number of documents removed.
        """

    @abstractmethod
    async def get_stats(self) -> CorpusStats:
        """Return aggregate statistics over the corpus."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is configured."""
