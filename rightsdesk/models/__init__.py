"""Pydantic data models for the rightsdesk corpus."""

from rightsdesk.models.corpus import (
    Chunk,
    CorpusStats,
    DocType,
    Document,
    DocumentStatus,
    DocumentSummary,
    HybridSearchResult,
    IngestionRequest,
    IngestionResult,
    IngestionStatus,
    Language,
    SearchFilters,
    SearchResult,
    SearchType,
    StrategyOutcome,
)

__all__ = [
    "Chunk",
    "CorpusStats",
    "DocType",
    "Document",
    "DocumentStatus",
    "DocumentSummary",
    "HybridSearchResult",
    "IngestionRequest",
    "IngestionResult",
    "IngestionStatus",
    "Language",
    "SearchFilters",
    "SearchResult",
    "SearchType",
    "StrategyOutcome",
]
