"""
Unit tests for fusion & ranking: confidence bands, merge by id, method labels.
"""
import pytest

from conftest import make_product
from shopsearch.domain.models.product import SearchResult, SearchType
from shopsearch.domain.models.search import BranchResult, BranchStatus, IntentWeights, QueryIntent, SearchStatus
from shopsearch.domain.services.constants import (
    LEXICAL_CONFIDENCE_BANDS,
    SEMANTIC_CONFIDENCE_BANDS,
    WEIGHTS_DEFAULT,
    WEIGHTS_VECTOR_ONLY,
)
from shopsearch.domain.services.fusion import FusionEngine, to_confidence

DEFAULT = IntentWeights.of(WEIGHTS_DEFAULT, QueryIntent.DEFAULT)


def lex(id, **kw):
    return SearchResult.from_product(make_product(id, **kw), SearchType.LEXICAL, 0.75)


def sem(id, score, **kw):
    return SearchResult.from_product(make_product(id, **kw), SearchType.SEMANTIC, score)


@pytest.fixture
def engine():
    return FusionEngine()


class TestConfidenceBands:
    @pytest.mark.parametrize("raw,expected", [
        (0.97, 1.0), (0.92, 1.0), (0.90, 0.9), (0.86, 0.8), (0.81, 0.7), (0.5, 0.5),
    ])
    def test_semantic(self, raw, expected):
        assert to_confidence(raw, SEMANTIC_CONFIDENCE_BANDS) == expected

    def test_lexical_baseline(self):
        assert to_confidence(0.75, LEXICAL_CONFIDENCE_BANDS) == 0.8

    def test_monotonic(self):
        raws = [i / 100 for i in range(101)]
        confs = [to_confidence(r, SEMANTIC_CONFIDENCE_BANDS) for r in raws]
        assert confs == sorted(confs)


class TestFuse:
    def test_shared_id_becomes_one_hybrid_entry(self, engine):
        out = engine.fuse(
            BranchResult.ok([lex(1)]),
            BranchResult.ok([sem(1, 0.93), sem(2, 0.86)]),
            DEFAULT, limit=10,
        )
        assert [r.id for r in out.results] == [1, 2]
        first, second = out.results
        assert first.search_type == SearchType.HYBRID
        assert first.confidence == pytest.approx(0.8 * 0.4 + 1.0 * 0.6)
        assert first.lexical_confidence == 0.8 and first.semantic_confidence == 1.0
        assert second.search_type == SearchType.SEMANTIC
        assert second.confidence == pytest.approx(0.8 * 0.6)
        assert out.breakdown.hybrid_count == 1
        assert out.breakdown.merged_count == 2
        assert out.breakdown.search_method == "hybrid_search"
        assert out.status == SearchStatus.OK

    def test_ties_broken_by_id(self, engine):
        out = engine.fuse(BranchResult.ok([lex(3), lex(1), lex(2)]), BranchResult.no_match(), DEFAULT, limit=10)
        assert [r.id for r in out.results] == [1, 2, 3]

    @pytest.mark.parametrize("limit", [0, 1, 2, 5])
    def test_limit_respected(self, engine, limit):
        out = engine.fuse(
            BranchResult.ok([lex(i) for i in range(1, 4)]),
            BranchResult.ok([sem(i, 0.9) for i in range(3, 7)]),
            DEFAULT, limit=limit,
        )
        assert len(out.results) <= limit

    def test_unavailable_products_dropped(self, engine):
        out = engine.fuse(BranchResult.ok([lex(1, available=False)]), BranchResult.ok([sem(2, 0.9)]), DEFAULT, limit=10)
        assert [r.id for r in out.results] == [2]

    def test_semantic_down_is_lexical_only_degraded(self, engine):
        out = engine.fuse(
            BranchResult.ok([lex(1), lex(2)]),
            BranchResult.unavailable("embedding_unavailable"),
            DEFAULT, limit=10,
        )
        assert out.breakdown.search_method == "lexical_only_search"
        assert out.status == SearchStatus.DEGRADED
        assert out.breakdown.degraded_reasons == ["embedding_unavailable"]
        assert all(r.confidence == pytest.approx(0.8 * 0.4) for r in out.results)

    def test_lexical_down_is_vector_only_degraded(self, engine):
        out = engine.fuse(BranchResult.unavailable("lexical_timeout"), BranchResult.ok([sem(1, 0.9)]), DEFAULT, limit=10)
        assert out.breakdown.search_method == "vector_only_search"
        assert out.status == SearchStatus.DEGRADED

    def test_lexical_skipped_is_vector_only_ok(self, engine):
        weights = IntentWeights.of(WEIGHTS_VECTOR_ONLY, QueryIntent.VECTOR_ONLY)
        out = engine.fuse(BranchResult.skipped(), BranchResult.ok([sem(1, 0.93), sem(2, 0.89)]), weights, limit=10)
        assert out.breakdown.search_method == "vector_only_search"
        assert out.status == SearchStatus.OK
        assert [r.confidence for r in out.results] == [1.0, 0.9]

    def test_both_down(self, engine):
        out = engine.fuse(BranchResult.unavailable("lexical_error"), BranchResult.unavailable("vector_error"), DEFAULT, limit=10)
        assert out.breakdown.search_method == "search_unavailable"
        assert out.status == SearchStatus.EMPTY
        assert out.breakdown.degraded_reasons == ["lexical_error", "vector_error"]

    def test_nothing_matched(self, engine):
        out = engine.fuse(BranchResult.no_match(), BranchResult.no_match(), DEFAULT, limit=10)
        assert out.breakdown.search_method == "no_results"
        assert out.status == SearchStatus.EMPTY
        assert out.breakdown.lexical_status == BranchStatus.NO_MATCH

    def test_inputs_not_mutated(self, engine):
        lexical = BranchResult.ok([lex(1)])
        engine.fuse(lexical, BranchResult.ok([sem(1, 0.95)]), DEFAULT, limit=10)
        assert lexical.results[0].search_type == SearchType.LEXICAL
        assert lexical.results[0].confidence == 0.0
