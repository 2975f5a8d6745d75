"""Rank fusion: merge semantic and keyword hits into one ranked list.

Scores come from list position, not from the raw similarity or BM25 values,
because the two scales are not comparable:

* the semantic hit at position ``i`` of ``N_s`` scores
  ``(N_s - i) * semantic_weight``;
* the keyword hit at position ``j`` of ``N_k`` scores ``N_k - j``;
* a document found by both keeps its semantic entry, adds the keyword score
  on top and is tagged ``hybrid``.

A document matched by both strategies therefore outranks any document
matched by one strategy at the same position.  Ties are broken by document
id so results are reproducible.

Semantic search works on chunks, so one document can appear several times
in its input; only its first (best) chunk is kept.
"""

from __future__ import annotations

from rightsdesk.models.corpus import SearchResult, SearchType

DEFAULT_SEMANTIC_WEIGHT = 2.0


def merge(
    semantic: list[SearchResult],
    keyword: list[SearchResult],
    limit: int,
    semantic_weight: float = DEFAULT_SEMANTIC_WEIGHT,
) -> list[SearchResult]:
    """Fuse two best-first result lists into at most *limit* results.

    Parameters
    ----------
    semantic:
        Semantic hits ordered by descending similarity.
    keyword:
        Keyword hits ordered by descending relevance.
    limit:
        Maximum number of fused results.
    semantic_weight:
        Multiplier on semantic position scores.

    Returns
    -------
    list[SearchResult]
        One entry per document, ``rank_score`` descending, then
        ``document_id`` ascending.
    """
    if limit <= 0:
        return []

    fused: dict[str, SearchResult] = {}

    n_semantic = len(semantic)
    for i, result in enumerate(semantic):
        if result.document_id in fused:
            continue
        fused[result.document_id] = result.model_copy(
            update={
                "rank_score": float(n_semantic - i) * semantic_weight,
                "search_type": SearchType.SEMANTIC,
            }
        )

    n_keyword = len(keyword)
    boosted: set[str] = set()
    for j, result in enumerate(keyword):
        doc_id = result.document_id
        if doc_id in boosted:
            continue
        boosted.add(doc_id)
        score = float(n_keyword - j)
        existing = fused.get(doc_id)
        if existing is None:
            fused[doc_id] = result.model_copy(
                update={"rank_score": score, "search_type": SearchType.KEYWORD}
            )
        else:
            fused[doc_id] = existing.model_copy(
                update={
                    "rank_score": existing.rank_score + score,
                    "keyword_score": result.keyword_score,
                    "search_type": SearchType.HYBRID,
                }
            )

    ranked = sorted(fused.values(), key=lambda r: (-r.rank_score, r.document_id))
    return ranked[:limit]
