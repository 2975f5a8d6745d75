"""Corpus data models for the rightsdesk ingestion and hybrid search layer.

Defines Pydantic v2 models for stored documents and their chunks, the
transient search results produced by hybrid search, ingestion outcomes and
corpus statistics.  Persisted and transient models alike use frozen config
so a value handed to a caller can never be mutated behind the store's back.

Corpus overview for new contributors:
    The corpus is a collection of reference documents (statutes, patient
    charters, hospital policies) that the assistant searches when it needs
    supporting text.

    1. INGESTION: a document is normalized, checksummed and stored as
       ``pending``.
    2. CHUNKING: its text is split into sentence-aligned chunks.
    3. EMBEDDING: each chunk is turned into a fixed-dimension vector.
    4. ACTIVATION: chunks are written and the document flips to ``active``
       in one transaction.
    5. SEARCH: semantic (vector) and keyword (full-text) results are merged
       by rank fusion into one ranked list of :class:`SearchResult`.

    See rightsdesk/services/ingestion/ and rightsdesk/services/search/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DocType(str, Enum):  # noqa: UP042
    """Kind of reference document."""

    LEGAL = "legal"
    MEDICAL = "medical"
    POLICY = "policy"
    GENERAL = "general"


class Language(str, Enum):  # noqa: UP042
    """Supported corpus languages."""

    EN = "en"
    HI = "hi"


class DocumentStatus(str, Enum):  # noqa: UP042
    """Document lifecycle.

    ``pending`` documents have no chunks yet and are invisible to search.
    ``inactive`` documents were superseded by a newer version.
    """

    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class SearchType(str, Enum):  # noqa: UP042
    SEMANTIC = "semantic"
    KEYWORD = "keyword"
    HYBRID = "hybrid"


class IngestionStatus(str, Enum):  # noqa: UP042
    CREATED = "created"
    DUPLICATE = "duplicate"


# ---------------------------------------------------------------------------
# Document: one stored reference text.
# ---------------------------------------------------------------------------
class Document(BaseModel):
    """A reference document stored in the corpus.

    ``checksum`` is unique among active documents: at most one stored copy
    exists per distinct content body, whatever its title or metadata.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) for this document.")
    title: str
    content_text: str = Field(description="Normalized full text that was chunked and checksummed.")
    content_html: str | None = None
    doc_type: DocType
    category: str | None = None
    # Insertion-ordered; duplicates are kept as given.
    tags: list[str] = Field(default_factory=list)
    language: Language = Language.EN
    source_url: str | None = None
    checksum: str = Field(description="Hex SHA-256 digest of content_text.")
    status: DocumentStatus = DocumentStatus.PENDING
    version: int = Field(default=1, ge=1)
    jurisdiction: str = "IN"
    published_at: date | None = None
    fetched_at: datetime
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Chunk: the unit of embedding and semantic retrieval.
# ---------------------------------------------------------------------------
class Chunk(BaseModel):
    """A sentence-aligned slice of a document with its embedding.

    ``chunk_index`` values for one document are exactly ``0..k-1``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    chunk_index: int = Field(ge=0)
    content: str
    embedding: list[float] = Field(default_factory=list)
    tokens: int = Field(default=0, ge=0, description="Approximate token count, ceil(len / 4).")
    created_at: datetime


# ---------------------------------------------------------------------------
# Search request / result models.
# ---------------------------------------------------------------------------
class SearchFilters(BaseModel):
    """Optional metadata filters.

    Every set field must match (AND); an unset field matches everything.
    """

    model_config = ConfigDict(frozen=True)

    doc_type: DocType | None = None
    category: str | None = None
    language: Language | None = None


class DocumentSummary(BaseModel):
    """Document metadata denormalized onto every search result."""

    model_config = ConfigDict(frozen=True)

    title: str
    doc_type: DocType
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    language: Language = Language.EN
    source_url: str | None = None
    published_at: date | None = None


class SearchResult(BaseModel):
    """One ranked hit from semantic, keyword or hybrid search.

    Semantic hits carry ``similarity``; keyword hits carry ``keyword_score``
    and ``chunk_index == 0``; hybrid hits carry both.  ``rank_score`` is set
    by rank fusion and is ``0`` on raw strategy output.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Chunk id for semantic hits, document id for keyword hits.")
    document_id: str
    chunk_index: int = Field(default=0, ge=0)
    content: str
    similarity: float | None = Field(default=None, ge=0.0, le=1.0)
    keyword_score: float | None = Field(default=None, ge=0.0)
    rank_score: float = Field(default=0.0, ge=0.0)
    search_type: SearchType
    document: DocumentSummary


class HybridSearchResult(BaseModel):
    """Response of one hybrid search call."""

    model_config = ConfigDict(frozen=True)

    results: list[SearchResult] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)
    query: str
    filters: SearchFilters = Field(default_factory=SearchFilters)
    # Strategies whose failure was absorbed as an empty result set.
    degraded_strategies: list[SearchType] = Field(default_factory=list)


@dataclass(frozen=True)
class StrategyOutcome:
    """Result of running one search strategy: either hits or the error it hit.

    Rank fusion reads failed outcomes as an empty result set, so the
    degradation is an explicit value rather than a hidden ``except`` block.
    """

    results: list[SearchResult] = field(default_factory=list)
    error: Exception | None = None

    @classmethod
    def success(cls, results: list[SearchResult]) -> StrategyOutcome:
        return cls(results=list(results))

    @classmethod
    def failure(cls, error: Exception) -> StrategyOutcome:
        return cls(results=[], error=error)

    @property
    def failed(self) -> bool:
        return self.error is not None

    def unwrap_or_empty(self) -> list[SearchResult]:
        return [] if self.failed else list(self.results)


# ---------------------------------------------------------------------------
# Ingestion models.
# ---------------------------------------------------------------------------
class IngestionRequest(BaseModel):
    """Validated input to a single ingestion.

    ``content`` may be plain text or a ``data:`` URI; it is normalized by
    the ingestion service before checksumming.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    doc_type: DocType
    language: Language = Language.EN
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    source_url: str | None = None
    content_html: str | None = None
    published_at: date | None = None


class IngestionResult(BaseModel):
    """Summary of a single document ingestion run.

    ``created`` is the signal callers should branch on; ``message`` is for
    humans only.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    created: bool
    status: IngestionStatus
    message: str
    chunks_created: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    version: int = Field(default=1, ge=1)
    content_placeholder: bool = Field(
        default=False,
        description="True when a binary payload was stored as a descriptive placeholder.",
    )
    ingestion_time: float = Field(default=0.0, ge=0.0, description="Wall-clock seconds.")


class CorpusStats(BaseModel):
    """Aggregate statistics over active documents."""

    model_config = ConfigDict(frozen=True)

    total_documents: int = Field(default=0, ge=0)
    total_chunks: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    pending_documents: int = Field(default=0, ge=0)
    inactive_documents: int = Field(default=0, ge=0)
    documents_by_type: dict[str, int] = Field(default_factory=dict)
    documents_by_language: dict[str, int] = Field(default_factory=dict)
