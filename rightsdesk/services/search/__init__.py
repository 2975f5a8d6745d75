"""Hybrid corpus search.

- **semantic_search** -- query embedding + nearest-neighbour chunk lookup
- **keyword_search** -- full-text document matching
- **rank_fusion** -- position-based merge with hybrid boosting
- **search_service** -- validation, concurrent strategies, fusion
"""

from rightsdesk.services.search.keyword_search import KeywordSearch
from rightsdesk.services.search.rank_fusion import merge
from rightsdesk.services.search.search_service import SearchService
from rightsdesk.services.search.semantic_search import SemanticSearch

__all__ = ["KeywordSearch", "SearchService", "SemanticSearch", "merge"]
