"""Keyword search strategy: full-text query over active documents.

Hits are whole documents: ``chunk_index`` is ``0`` and the snippet is the
start of the document text, not a match-centred excerpt.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from rightsdesk.models.corpus import SearchFilters, StrategyOutcome
from rightsdesk.utils.errors import CorpusError

if TYPE_CHECKING:
    from rightsdesk.interfaces.document_store import IDocumentStore

logger = structlog.get_logger(logger_name=__name__)


class KeywordSearch:
    """Web-search style full-text matching delegated to the document store."""

    def __init__(self, store: IDocumentStore, snippet_chars: int = 500) -> None:
        self._store = store
        self._snippet_chars = snippet_chars

    async def run(self, query: str, filters: SearchFilters, limit: int) -> StrategyOutcome:
        try:
            results = await self._store.keyword_search(
                query, filters, limit=limit, snippet_chars=self._snippet_chars
            )
        except CorpusError as exc:
            logger.warning(
                "keyword_search_failed",
                strategy="keyword",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return StrategyOutcome.failure(exc)

        logger.debug("keyword_search_complete", hits=len(results))
        return StrategyOutcome.success(results)
