"""Hybrid search orchestrator.

:class:`SearchService` validates a query, runs the semantic and keyword
strategies concurrently and fuses their results.  Each strategy reports a
:class:`~rightsdesk.models.corpus.StrategyOutcome`; a failed outcome
contributes no results and is listed in ``degraded_strategies`` instead of
failing the request.  Only invalid input raises.
"""

from __future__ import annotations

import asyncio
import math
import time
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from rightsdesk.models.corpus import HybridSearchResult, SearchFilters, SearchType
from rightsdesk.services.search.keyword_search import KeywordSearch
from rightsdesk.services.search.rank_fusion import DEFAULT_SEMANTIC_WEIGHT, merge
from rightsdesk.services.search.semantic_search import SemanticSearch
from rightsdesk.utils.errors import ValidationError

logger = structlog.get_logger(logger_name=__name__)


class SearchService:
    """Runs semantic and keyword search side by side and merges them.

    Parameters
    ----------
    semantic:
        Vector similarity strategy.
    keyword:
        Full-text strategy.
    default_limit:
        Results returned when the caller gives no limit.
    max_limit:
        Largest accepted limit.
    default_threshold:
        Minimum semantic similarity when the caller gives none.
    semantic_weight:
        Rank-fusion multiplier for semantic positions.
    """

    def __init__(
        self,
        semantic: SemanticSearch,
        keyword: KeywordSearch,
        default_limit: int = 10,
        max_limit: int = 100,
        default_threshold: float = 0.3,
        semantic_weight: float = DEFAULT_SEMANTIC_WEIGHT,
    ) -> None:
        self._semantic = semantic
        self._keyword = keyword
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._default_threshold = default_threshold
        self._semantic_weight = semantic_weight

    async def search(
        self,
        query: str,
        filters: SearchFilters | dict[str, Any] | None = None,
        limit: int | None = None,
        threshold: float | None = None,
    ) -> HybridSearchResult:
        """Return fused semantic + keyword results for *query*.

        Raises
        ------
        ValidationError
            Empty query, ``limit`` outside ``1..max_limit``, ``threshold``
            outside ``[0, 1]`` or unknown filter values.
        """
        query = query.strip() if isinstance(query, str) else ""
        if not query:
            raise ValidationError("Query is required")

        limit = self._default_limit if limit is None else limit
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= self._max_limit:
            raise ValidationError(f"limit must be an integer between 1 and {self._max_limit}")

        threshold = self._default_threshold if threshold is None else threshold
        if (
            isinstance(threshold, bool)
            or not isinstance(threshold, (int, float))
            or math.isnan(threshold)
            or not 0.0 <= threshold <= 1.0
        ):
            raise ValidationError("threshold must be a number between 0 and 1")

        search_filters = self._coerce_filters(filters)

        start = time.monotonic()
        semantic_outcome, keyword_outcome = await asyncio.gather(
            self._semantic.run(query, search_filters, limit=limit, threshold=float(threshold)),
            self._keyword.run(query, search_filters, limit=limit),
        )

        degraded: list[SearchType] = []
        if semantic_outcome.failed:
            degraded.append(SearchType.SEMANTIC)
        if keyword_outcome.failed:
            degraded.append(SearchType.KEYWORD)

        results = merge(
            semantic_outcome.unwrap_or_empty(),
            keyword_outcome.unwrap_or_empty(),
            limit=limit,
            semantic_weight=self._semantic_weight,
        )

        logger.info(
            "search_complete",
            query=query[:100],
            semantic_hits=len(semantic_outcome.results),
            keyword_hits=len(keyword_outcome.results),
            returned=len(results),
            degraded=[s.value for s in degraded],
            elapsed_ms=round((time.monotonic() - start) * 1000, 1),
        )
        return HybridSearchResult(
            results=results,
            total=len(results),
            query=query,
            filters=search_filters,
            degraded_strategies=degraded,
        )

    @staticmethod
    def _coerce_filters(filters: SearchFilters | dict[str, Any] | None) -> SearchFilters:
        if filters is None:
            return SearchFilters()
        if isinstance(filters, SearchFilters):
            return filters
        try:
            return SearchFilters.model_validate(filters)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid search filters: {exc.error_count()} error(s)") from exc
