"""Pydantic request/response schemas for the rightsdesk corpus API.

Defines the public contract for every REST endpoint: document ingestion
(raw content and URL), document lookup and deletion, hybrid search, corpus
statistics and health.

# ─── HOW SCHEMAS WORK ──────────────────────────────────────────────────
#
# Request schemas only check JSON *shape* (strings are strings, lists are
# lists).  Domain rules such as the allowed doc_type values, the minimum
# content length or the search limit range are enforced by the services,
# so the HTTP API, the CLI and direct Python callers all get the same
# errors with the same messages.
#
# Convention: Request schemas end with "Request", response schemas
# end with "Response".
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from rightsdesk.models.corpus import SearchResult


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class IngestDocumentRequest(BaseModel):
    """A document to add to the corpus.

    ``content`` is plain text or a ``data:`` URI (e.g. from a file picker).
    """

    title: str
    content: str
    doc_type: str
    language: str = "en"
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    source_url: str | None = None
    published_at: date | None = None


class IngestUrlRequest(BaseModel):
    """A web page to fetch, clean and add to the corpus."""

    url: str
    doc_type: str
    category: str | None = None
    language: str = "en"
    tags: list[str] = Field(default_factory=list)


class IngestResponse(BaseModel):
    """Outcome of an ingestion.  Branch on ``created``, not on ``message``."""

    document_id: str
    created: bool
    status: str
    message: str
    chunks_created: int = 0
    total_tokens: int = 0
    version: int = 1
    content_placeholder: bool = False
    ingestion_time: float = 0.0


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentResponse(BaseModel):
    """A stored document with its chunk count."""

    id: str
    title: str
    content_text: str
    doc_type: str
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    language: str
    source_url: str | None = None
    checksum: str
    status: str
    version: int
    jurisdiction: str
    published_at: date | None = None
    fetched_at: datetime
    created_at: datetime
    updated_at: datetime
    chunk_count: int = 0


class DeleteDocumentResponse(BaseModel):
    document_id: str
    deleted: bool


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class SearchFiltersRequest(BaseModel):
    doc_type: str | None = None
    category: str | None = None
    language: str | None = None


class SearchRequest(BaseModel):
    """Hybrid search query.  Omitted ``limit``/``threshold`` use server defaults."""

    query: str
    filters: SearchFiltersRequest | None = None
    limit: int | None = None
    threshold: float | None = None


class SearchResponse(BaseModel):
    """Fused search results.

    ``degraded_strategies`` lists strategies (``semantic``/``keyword``) that
    failed and contributed no results.
    """

    results: list[SearchResult] = Field(default_factory=list)
    total: int = 0
    query: str
    filters: dict[str, Any] = Field(default_factory=dict)
    degraded_strategies: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------


class CorpusStatsResponse(BaseModel):
    """Aggregate statistics over active documents."""

    total_documents: int = 0
    total_chunks: int = 0
    total_tokens: int = 0
    pending_documents: int = 0
    inactive_documents: int = 0
    documents_by_type: dict[str, int] = Field(default_factory=dict)
    documents_by_language: dict[str, int] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body.

    ``error`` is the exception class name, ``kind`` the machine-readable
    category and ``detail`` the human-readable message.
    """

    error: str
    kind: str
    detail: str | None = None
