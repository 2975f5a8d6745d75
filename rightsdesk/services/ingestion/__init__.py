"""Corpus ingestion pipeline.

- **chunker** -- sentence-aligned chunks under a ``ceil(len / 4)`` token budget
- **deduplicator** -- SHA-256 content checksums and duplicate lookup
- **content_normalizer** -- data-URI decoding, placeholders, format rejection
- **ingestion_service** -- the orchestrator tying them to the store
"""

from rightsdesk.services.ingestion.chunker import TextChunker, estimate_tokens
from rightsdesk.services.ingestion.content_normalizer import (
    NormalizedContent,
    normalize_content,
)
from rightsdesk.services.ingestion.deduplicator import Deduplicator, compute_checksum
from rightsdesk.services.ingestion.ingestion_service import IngestionService

__all__ = [
    "Deduplicator",
    "IngestionService",
    "NormalizedContent",
    "TextChunker",
    "compute_checksum",
    "estimate_tokens",
    "normalize_content",
]
