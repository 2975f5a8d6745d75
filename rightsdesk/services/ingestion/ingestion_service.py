"""Orchestrator for the corpus ingestion pipeline.

Pipeline stages: **validate -> normalize -> deduplicate -> chunk -> embed -> activate**.

The :class:`IngestionService` implements the **Orchestrator pattern**: it
coordinates the chunker, deduplicator, embedding client, document store and
page fetcher without any of them knowing about each other.  All of them are
injected through the constructor, so providers can be swapped (OpenAI ->
Ollama, SQLite -> Postgres) without changing this class.

Write protocol
--------------
Embedding a long document means many network calls, and holding a database
transaction open across them would block every other writer.  Ingestion
therefore writes in two phases:

    1. the document row is inserted with status ``pending`` (invisible to
       search and to deduplication);
    2. once every chunk is embedded, the store inserts the chunks and flips
       the document to ``active`` in one transaction.

If anything fails in between, the pending row is deleted before the error
propagates, so a document is either fully searchable or absent.  Rows left
by a process that died mid-ingestion are removed by :meth:`sweep_pending`.
"""

from __future__ import annotations

import time
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import structlog
from pydantic import ValidationError as PydanticValidationError

from rightsdesk.models.corpus import (
    Chunk,
    CorpusStats,
    Document,
    DocumentStatus,
    IngestionRequest,
    IngestionResult,
    IngestionStatus,
)
from rightsdesk.services.ingestion.chunker import TextChunker, estimate_tokens
from rightsdesk.services.ingestion.content_normalizer import normalize_content
from rightsdesk.services.ingestion.deduplicator import Deduplicator, compute_checksum
from rightsdesk.utils.errors import (
    ChecksumConflictError,
    ContentTooShortError,
    DocumentNotFoundError,
    StorageError,
    ValidationError,
)

if TYPE_CHECKING:
    from rightsdesk.interfaces.document_store import IDocumentStore
    from rightsdesk.interfaces.page_fetcher import IPageFetcher
    from rightsdesk.services.embedding_client import EmbeddingClient

logger = structlog.get_logger(logger_name=__name__)

_CREATED_MESSAGE = "Document ingested successfully"
_DUPLICATE_MESSAGE = "Document already exists"


def _format_validation_error(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(loc) for loc in err["loc"]) or "request"
        parts.append(f"{field}: {err['msg']}")
    return "Invalid ingestion request: " + "; ".join(parts)


class IngestionService:
    """Orchestrates ingestion: validate -> normalize -> deduplicate -> chunk -> embed -> activate.

    Parameters
    ----------
    store:
        Persists documents and chunks.
    chunker:
        Splits normalized text into sentence-aligned chunks.
    embedding_client:
        Embeds chunks with timeouts and bounded parallelism.
    page_fetcher:
        Optional fetcher used by :meth:`ingest_from_url`.
    min_content_length:
        Normalized text shorter than this is rejected.
    title_max_length:
        Titles are truncated to this many characters.
    default_jurisdiction:
        Jurisdiction code stamped on every new document.
    pending_ttl_minutes:
        Age after which :meth:`sweep_pending` treats a pending row as
        abandoned.
    """

    def __init__(
        self,
        store: IDocumentStore,
        chunker: TextChunker,
        embedding_client: EmbeddingClient,
        page_fetcher: IPageFetcher | None = None,
        min_content_length: int = 50,
        title_max_length: int = 200,
        default_jurisdiction: str = "IN",
        pending_ttl_minutes: int = 30,
    ) -> None:
        self._store = store
        self._chunker = chunker
        self._embedding_client = embedding_client
        self._page_fetcher = page_fetcher
        self._deduplicator = Deduplicator(store)
        self._min_content_length = min_content_length
        self._title_max_length = title_max_length
        self._default_jurisdiction = default_jurisdiction
        self._pending_ttl = timedelta(minutes=pending_ttl_minutes)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        title: str,
        content: str,
        doc_type: str,
        language: str = "en",
        category: str | None = None,
        tags: list[str] | None = None,
        source_url: str | None = None,
        content_html: str | None = None,
        published_at: date | None = None,
    ) -> IngestionResult:
        """Ingest one document and return its id.

        Identical content already in the corpus short-circuits with
        ``created=False`` and the existing id; no embedding calls are made.
        Re-ingesting *different* content under an existing ``source_url``
        stores a new version and retires the previous one.

        Raises
        ------
        ValidationError
            Malformed request or data URI.
        ContentTooShortError
            Normalized text under ``min_content_length`` characters.
        UnsupportedFormatError
            Word documents and undecodable binary payloads.
        EmbeddingError, StorageError
            Provider failures; nothing is left in the store.
        """
        start = time.monotonic()
        request = self._validate_request(
            title=title,
            content=content,
            doc_type=doc_type,
            language=language,
            category=category,
            tags=tags,
            source_url=source_url,
            content_html=content_html,
            published_at=published_at,
        )

        # Step 1: turn data URIs into text (or a placeholder).
        normalized = normalize_content(request.content, request.title)
        text = normalized.text.strip()

        # Step 2: length check on what will actually be indexed.
        if len(text) < self._min_content_length:
            raise ContentTooShortError(
                f"Content must be at least {self._min_content_length} characters "
                f"(got {len(text)})"
            )

        # Step 3: content-addressed deduplication.
        checksum = compute_checksum(text)
        existing = await self._deduplicator.find_duplicate(checksum)
        if existing is not None:
            return self._duplicate_result(existing, start)

        # Step 4: chunk before writing anything; chunking is pure.
        chunk_texts = self._chunker.chunk(text)
        if not chunk_texts:
            raise ValidationError("Content contains no sentences to index")

        previous = (
            await self._store.find_active_by_source_url(request.source_url)
            if request.source_url
            else None
        )
        now = datetime.now(timezone.utc)
        document = Document(
            id=str(uuid.uuid4()),
            title=request.title[: self._title_max_length],
            content_text=text,
            content_html=request.content_html,
            doc_type=request.doc_type,
            category=request.category,
            tags=request.tags,
            language=request.language,
            source_url=request.source_url or None,
            checksum=checksum,
            status=DocumentStatus.PENDING,
            version=previous.version + 1 if previous else 1,
            jurisdiction=self._default_jurisdiction,
            published_at=request.published_at,
            fetched_at=now,
            created_at=now,
            updated_at=now,
        )

        # Step 5: pending row, then embed and activate atomically.
        await self._store.create_pending_document(document)
        try:
            vectors = await self._embedding_client.embed_chunks(chunk_texts)
            chunks = [
                Chunk(
                    id=str(uuid.uuid4()),
                    document_id=document.id,
                    chunk_index=index,
                    content=chunk_text,
                    embedding=vector,
                    tokens=estimate_tokens(chunk_text),
                    created_at=now,
                )
                for index, (chunk_text, vector) in enumerate(zip(chunk_texts, vectors))
            ]
            await self._store.activate_document(
                document.id,
                chunks,
                supersedes=previous.id if previous else None,
            )
        except ChecksumConflictError:
            # Another ingestion of the same body activated first.
            await self._discard_pending(document.id)
            winner = await self._store.find_active_by_checksum(checksum)
            if winner is None:
                raise
            logger.info("concurrent_duplicate_resolved", document_id=winner.id)
            return self._duplicate_result(winner, start)
        except Exception as exc:
            logger.error(
                "ingestion_failed",
                document_id=document.id,
                title=document.title,
                error=str(exc),
            )
            await self._discard_pending(document.id)
            raise

        total_tokens = sum(c.tokens for c in chunks)
        elapsed = time.monotonic() - start
        logger.info(
            "document_ingested",
            document_id=document.id,
            title=document.title,
            doc_type=document.doc_type.value,
            chunks=len(chunks),
            total_tokens=total_tokens,
            version=document.version,
            placeholder=normalized.placeholder,
            elapsed_s=round(elapsed, 3),
        )
        return IngestionResult(
            document_id=document.id,
            created=True,
            status=IngestionStatus.CREATED,
            message=_CREATED_MESSAGE,
            chunks_created=len(chunks),
            total_tokens=total_tokens,
            version=document.version,
            content_placeholder=normalized.placeholder,
            ingestion_time=elapsed,
        )

    async def ingest_from_url(
        self,
        url: str,
        doc_type: str,
        category: str | None = None,
        language: str = "en",
        tags: list[str] | None = None,
    ) -> IngestionResult:
        """Fetch *url*, clean the HTML and ingest the resulting text.

        Raises
        ------
        ValidationError
            Missing or non-HTTP(S) URL, or no page fetcher configured.
        FetchError
            Transport failure or non-2xx response.
        ContentTooShortError
            Less than ``min_content_length`` characters left after cleaning.
        """
        url = (url or "").strip()
        if not url:
            raise ValidationError("URL is required")
        if urlparse(url).scheme not in ("http", "https") or not urlparse(url).netloc:
            raise ValidationError(f"URL must be an absolute http(s) URL: {url}")
        if self._page_fetcher is None:
            raise ValidationError("URL ingestion is not configured")

        page = await self._page_fetcher.fetch(url)
        if len(page.text) < self._min_content_length:
            raise ContentTooShortError(
                "Could not extract sufficient content from URL "
                f"(got {len(page.text)} characters)"
            )

        return await self.ingest(
            title=page.title,
            content=page.text,
            doc_type=doc_type,
            language=language,
            category=category,
            tags=tags,
            source_url=url,
            content_html=page.html or None,
        )

    async def get_document(self, document_id: str) -> Document:
        document = await self._store.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document

    async def get_chunks(self, document_id: str) -> list[Chunk]:
        await self.get_document(document_id)
        return await self._store.get_chunks(document_id)

    async def delete_document(self, document_id: str) -> None:
        """Delete a document with its chunks and full-text entry."""
        if not await self._store.delete_document(document_id):
            raise DocumentNotFoundError(f"Document {document_id} not found")
        logger.info("document_removed", document_id=document_id)

    async def sweep_pending(self, older_than: datetime | None = None) -> int:
        """Remove pending documents abandoned by crashed ingestions.

        Parameters
        ----------
        older_than:
            Cut-off creation time.  Defaults to now minus the configured
            pending TTL, which leaves in-flight ingestions alone.
        """
        cutoff = older_than or datetime.now(timezone.utc) - self._pending_ttl
        removed = await self._store.sweep_pending(cutoff)
        logger.info("pending_sweep_complete", removed=removed, cutoff=cutoff.isoformat())
        return removed

    async def get_corpus_stats(self) -> CorpusStats:
        return await self._store.get_stats()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_request(**fields: object) -> IngestionRequest:
        if fields.get("tags") is None:
            fields["tags"] = []
        try:
            return IngestionRequest.model_validate(fields)
        except PydanticValidationError as exc:
            raise ValidationError(_format_validation_error(exc)) from exc

    async def _discard_pending(self, document_id: str) -> None:
        try:
            await self._store.delete_document(document_id)
        except StorageError as exc:
            # Left for sweep_pending; the original failure is what the caller sees.
            logger.error(
                "pending_cleanup_failed",
                document_id=document_id,
                error=str(exc),
            )

    @staticmethod
    def _duplicate_result(existing: Document, start: float) -> IngestionResult:
        return IngestionResult(
            document_id=existing.id,
            created=False,
            status=IngestionStatus.DUPLICATE,
            message=_DUPLICATE_MESSAGE,
            version=existing.version,
            ingestion_time=time.monotonic() - start,
        )
