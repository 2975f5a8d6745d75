"""Content-addressed deduplication for ingestion.

A document's identity is the SHA-256 of its normalized text.  Metadata
(title, tags, source URL) plays no part, so the same article pasted by hand
and fetched by URL is stored once.  Finding a duplicate is a normal outcome:
ingestion returns the existing id and skips every embedding call.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from rightsdesk.interfaces.document_store import IDocumentStore
    from rightsdesk.models.corpus import Document

logger = structlog.get_logger(logger_name=__name__)


def compute_checksum(content: str) -> str:
    """Return the hex SHA-256 digest of *content* encoded as UTF-8."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class Deduplicator:
    """Looks up active documents by content checksum."""

    def __init__(self, store: IDocumentStore) -> None:
        self._store = store

    async def find_duplicate(self, checksum: str) -> Document | None:
        """Return the active document whose content hashes to *checksum*, if any."""
        existing = await self._store.find_active_by_checksum(checksum)
        if existing is not None:
            logger.info(
                "duplicate_document",
                checksum=checksum,
                existing_document_id=existing.id,
            )
        return existing
