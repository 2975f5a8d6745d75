"""Unit tests for rank fusion of semantic and keyword hits."""

from __future__ import annotations

import pytest

from rightsdesk.models.corpus import DocType, DocumentSummary, SearchResult, SearchType
from rightsdesk.services.search.rank_fusion import merge

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_SUMMARY = DocumentSummary(title="Doc", doc_type=DocType.LEGAL)


def _semantic(doc_id: str, similarity: float, chunk_index: int = 0) -> SearchResult:
    return SearchResult(
        id=f"{doc_id}-chunk-{chunk_index}",
        document_id=doc_id,
        chunk_index=chunk_index,
        content=f"chunk {chunk_index} of {doc_id}",
        similarity=similarity,
        search_type=SearchType.SEMANTIC,
        document=_SUMMARY,
    )


def _keyword(doc_id: str, score: float = 1.0) -> SearchResult:
    return SearchResult(
        id=doc_id,
        document_id=doc_id,
        chunk_index=0,
        content=f"start of {doc_id}",
        keyword_score=score,
        search_type=SearchType.KEYWORD,
        document=_SUMMARY,
    )


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestMergeScenario:
    def test_hybrid_document_ranks_first(self) -> None:
        results = merge(
            semantic=[_semantic("X", 0.9), _semantic("Y", 0.8)],
            keyword=[_keyword("X"), _keyword("Z")],
            limit=10,
        )

        assert [r.document_id for r in results] == ["X", "Y", "Z"]
        x, y, z = results
        assert x.search_type == SearchType.HYBRID
        assert x.rank_score == 6.0  # (2 - 0) * 2 + (2 - 0)
        assert y.search_type == SearchType.SEMANTIC
        assert y.rank_score == 2.0  # (2 - 1) * 2
        assert z.search_type == SearchType.KEYWORD
        assert z.rank_score == 1.0  # 2 - 1

    def test_hybrid_keeps_both_scores(self) -> None:
        results = merge([_semantic("X", 0.9)], [_keyword("X", score=4.2)], limit=10)
        assert results[0].similarity == pytest.approx(0.9)
        assert results[0].keyword_score == pytest.approx(4.2)

    def test_inputs_not_mutated(self) -> None:
        semantic = [_semantic("X", 0.9)]
        merge(semantic, [_keyword("X")], limit=10)
        assert semantic[0].rank_score == 0.0
        assert semantic[0].search_type == SearchType.SEMANTIC


class TestPromotion:
    def test_hybrid_beats_single_source_at_same_rank(self) -> None:
        # "B" is hybrid at rank 1 in both lists; "A" tops semantic alone.
        results = merge(
            semantic=[_semantic("A", 0.9), _semantic("B", 0.8)],
            keyword=[_keyword("C"), _keyword("B")],
            limit=10,
        )
        by_id = {r.document_id: r for r in results}
        assert by_id["B"].rank_score > by_id["C"].rank_score
        assert by_id["B"].search_type == SearchType.HYBRID

    def test_semantic_weight_is_configurable(self) -> None:
        results = merge([_semantic("A", 0.9)], [_keyword("B"), _keyword("C")], 10, 1.0)
        assert [r.document_id for r in results] == ["B", "A", "C"]
        assert results[0].rank_score == 2.0
        assert results[1].rank_score == results[2].rank_score == 1.0


class TestBounds:
    @pytest.mark.parametrize("limit", [1, 2, 3, 10])
    def test_result_count_is_min_of_limit_and_union(self, limit: int) -> None:
        results = merge(
            semantic=[_semantic("A", 0.9), _semantic("B", 0.7)],
            keyword=[_keyword("B"), _keyword("C")],
            limit=limit,
        )
        assert len(results) == min(limit, 3)

    def test_zero_limit_returns_nothing(self) -> None:
        assert merge([_semantic("A", 0.9)], [_keyword("B")], limit=0) == []

    def test_both_empty(self) -> None:
        assert merge([], [], limit=10) == []


class TestDeduplication:
    def test_first_chunk_per_document_kept(self) -> None:
        results = merge(
            semantic=[_semantic("A", 0.95, 3), _semantic("A", 0.9, 0), _semantic("B", 0.5)],
            keyword=[],
            limit=10,
        )
        assert [r.document_id for r in results] == ["A", "B"]
        assert results[0].chunk_index == 3
        assert results[0].rank_score == 6.0  # (3 - 0) * 2
        assert results[1].rank_score == 2.0  # (3 - 2) * 2

    def test_repeated_keyword_document_boosts_once(self) -> None:
        results = merge([], [_keyword("A"), _keyword("A")], limit=10)
        assert len(results) == 1
        assert results[0].rank_score == 2.0


class TestTieBreak:
    def test_equal_scores_ordered_by_document_id(self) -> None:
        # Semantic "m" at position 1 of 2 scores 2; keyword "b" at position 0 of 2 scores 2.
        results = merge(
            semantic=[_semantic("z", 0.9), _semantic("m", 0.8)],
            keyword=[_keyword("b"), _keyword("q")],
            limit=10,
        )
        assert [r.document_id for r in results] == ["z", "b", "m", "q"]

    def test_order_is_reproducible(self) -> None:
        semantic = [_semantic(d, 0.5) for d in ("d", "c", "b", "a")]
        keyword = [_keyword(d) for d in ("a", "e")]
        first = [r.document_id for r in merge(semantic, keyword, limit=10)]
        second = [r.document_id for r in merge(semantic, keyword, limit=10)]
        assert first == second
