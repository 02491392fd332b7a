import pytest

from scribble.search.retrieval import HybridRanker, rrf_merge, to_ranked
from tests.conftest import MockEmbedder, StubBackend, make_hits


class TestRrfMerge:
    def test_single_ranking(self):
        scores = rrf_merge([to_ranked(make_hits("a", "b", "c"))])

        assert list(scores) == ["a", "b", "c"]
        assert scores["a"] > scores["b"] > scores["c"]
        assert scores["a"] == 1 / 61

    def test_weighted_contributions_are_summed(self):
        lexical = to_ranked(make_hits("a", "b"))
        vector = to_ranked(make_hits("b", "c"))

        scores = rrf_merge([lexical, vector], [0.4, 0.6], k=60)

        assert scores["a"] == pytest.approx(0.4 / 61)
        assert scores["b"] == pytest.approx(0.4 / 62 + 0.6 / 61)
        assert scores["c"] == pytest.approx(0.6 / 62)

    def test_empty_rankings(self):
        assert rrf_merge([]) == {}
        assert rrf_merge([[]]) == {}

    def test_k_parameter(self):
        ranking = [to_ranked(make_hits("a", "b"))]
        scores_k60 = rrf_merge(ranking, k=60)
        scores_k10 = rrf_merge(ranking, k=10)

        # With smaller k, the rank difference has more impact
        assert scores_k10["a"] / scores_k10["b"] > scores_k60["a"] / scores_k60["b"]

    def test_weight_count_must_match(self):
        with pytest.raises(ValueError):
            rrf_merge([to_ranked(make_hits("a"))], [0.4, 0.6])

    def test_keys_in_first_seen_order(self):
        lexical = to_ranked(make_hits("x", "y"))
        vector = to_ranked(make_hits("z", "x"))

        assert list(rrf_merge([lexical, vector], [0.4, 0.6])) == ["x", "y", "z"]


class TestFuse:
    @pytest.fixture
    def ranker(self) -> HybridRanker:
        return HybridRanker(StubBackend(), MockEmbedder())

    def test_expected_order(self, ranker: HybridRanker):
        fused = ranker.fuse(to_ranked(make_hits("a", "b")), to_ranked(make_hits("b", "c")))

        assert [doc.id for doc, _ in fused] == ["b", "a", "c"]
        assert [score for _, score in fused] == pytest.approx([0.4 / 62 + 0.6 / 61, 0.4 / 61, 0.6 / 62])

    def test_tie_prefers_lexical_order(self):
        ranker = HybridRanker(StubBackend(), MockEmbedder(), lexical_weight=0.5, vector_weight=0.5)

        # Mirrored lists give both documents exactly the same fused score
        for _ in range(5):
            fused = ranker.fuse(to_ranked(make_hits("a", "b")), to_ranked(make_hits("b", "a")))
            assert fused[0][1] == fused[1][1]
            assert [doc.id for doc, _ in fused] == ["a", "b"]

    def test_tie_between_lexical_only_and_vector_only(self):
        ranker = HybridRanker(StubBackend(), MockEmbedder(), lexical_weight=0.5, vector_weight=0.5)

        fused = ranker.fuse(to_ranked(make_hits("lex")), to_ranked(make_hits("vec")))

        assert [doc.id for doc, _ in fused] == ["lex", "vec"]

    def test_vector_only_results_keep_rank_order(self):
        ranker = HybridRanker(StubBackend(), MockEmbedder(), lexical_weight=0.0, vector_weight=1.0)

        fused = ranker.fuse([], to_ranked(make_hits("first", "second")))

        assert [doc.id for doc, _ in fused] == ["first", "second"]

    def test_document_kept_from_first_list(self, ranker: HybridRanker):
        lexical = to_ranked(make_hits("a"))
        vector = to_ranked(make_hits("a"))

        fused = ranker.fuse(lexical, vector)

        assert len(fused) == 1
        assert fused[0][0] is lexical[0].source
