"""Semantic search strategy: embed the query, then nearest-neighbour lookup.

Embedding the query is part of this strategy, so an embedding outage only
costs the semantic half of a hybrid search.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from rightsdesk.models.corpus import SearchFilters, StrategyOutcome
from rightsdesk.utils.errors import CorpusError

if TYPE_CHECKING:
    from rightsdesk.interfaces.document_store import IDocumentStore
    from rightsdesk.services.embedding_client import EmbeddingClient

logger = structlog.get_logger(logger_name=__name__)


class SemanticSearch:
    """Vector similarity over stored chunk embeddings."""

    def __init__(self, embedding_client: EmbeddingClient, store: IDocumentStore) -> None:
        self._embedding_client = embedding_client
        self._store = store

    async def run(
        self,
        query: str,
        filters: SearchFilters,
        limit: int,
        threshold: float,
    ) -> StrategyOutcome:
        """Return chunks scoring at least *threshold*, or the error that stopped the search."""
        try:
            query_embedding = await self._embedding_client.embed_query(query)
            results = await self._store.semantic_search(
                query_embedding, filters, limit=limit, threshold=threshold
            )
        except CorpusError as exc:
            logger.warning(
                "semantic_search_failed",
                strategy="semantic",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return StrategyOutcome.failure(exc)

        logger.debug("semantic_search_complete", hits=len(results), threshold=threshold)
        return StrategyOutcome.success(results)
