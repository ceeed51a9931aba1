"""Test weighted score fusion: outer union, threshold, ordering, caps."""
import pytest

from docqa.core.types import QueryConfiguration, SearchType
from docqa.retrieval.fusion import fuse_scores


def test_single_channel_hit_combined_score(make_chunk, open_config) -> None:
    # semantic 0.9, keyword missing, weights (0.7, 0.3)
    out = fuse_scores([(make_chunk("a"), 0.9)], [], open_config)

    assert len(out) == 1
    assert out[0].combined_score == pytest.approx(0.63)
    assert out[0].keyword_score == 0.0


def test_outer_union_keeps_chunks_from_either_channel(make_chunk, open_config) -> None:
    a, b, c = make_chunk("a"), make_chunk("b"), make_chunk("c")
    out = fuse_scores([(a, 0.8), (c, 0.5)], [(b, 0.9), (c, 0.4)], open_config)

    by_id = {x.chunk.chunk_id: x for x in out}
    assert set(by_id) == {"a", "b", "c"}
    assert by_id["a"].keyword_score == 0.0
    assert by_id["b"].semantic_score == 0.0
    assert by_id["c"].semantic_score == 0.5
    assert by_id["c"].keyword_score == 0.4


def test_combined_is_weighted_sum(make_chunk) -> None:
    config = QueryConfiguration(semantic_weight=0.6, keyword_weight=0.5, similarity_threshold=0.0)
    hits_s = [(make_chunk(f"s{i}"), i / 10) for i in range(5)]
    hits_k = [(make_chunk(f"s{i}"), (4 - i) / 10) for i in range(5)]

    for cand in fuse_scores(hits_s, hits_k, config):
        expected = cand.semantic_score * 0.6 + cand.keyword_score * 0.5
        assert cand.combined_score == pytest.approx(expected)


def test_weights_need_not_sum_to_one(make_chunk) -> None:
    config = QueryConfiguration(semantic_weight=1.0, keyword_weight=1.0, similarity_threshold=0.0)
    chunk = make_chunk("a")
    out = fuse_scores([(chunk, 0.8)], [(chunk, 0.7)], config)
    assert out[0].combined_score == pytest.approx(1.5)


def test_threshold_filters_on_combined_score(make_chunk) -> None:
    config = QueryConfiguration(similarity_threshold=0.5, enable_reranking=False)
    hits = [(make_chunk("hi"), 0.9), (make_chunk("mid"), 0.72), (make_chunk("lo"), 0.5)]
    out = fuse_scores(hits, [], config)

    assert [c.chunk.chunk_id for c in out] == ["hi", "mid"]
    assert all(c.combined_score >= 0.5 for c in out)


def test_unreachable_threshold_returns_empty_list(make_chunk) -> None:
    config = QueryConfiguration(similarity_threshold=0.99)
    out = fuse_scores([(make_chunk("a"), 0.95)], [(make_chunk("b"), 0.9)], config)
    assert out == []


def test_exact_ties_broken_by_chunk_id(make_chunk, open_config) -> None:
    hits = [(make_chunk("zeta"), 0.5), (make_chunk("alpha"), 0.5), (make_chunk("mid"), 0.5)]
    out = fuse_scores(hits, [], open_config)
    assert [c.chunk.chunk_id for c in out] == ["alpha", "mid", "zeta"]

    # input order must not matter
    out_rev = fuse_scores(list(reversed(hits)), [], open_config)
    assert [c.chunk.chunk_id for c in out_rev] == ["alpha", "mid", "zeta"]


def test_output_sorted_non_increasing(make_chunk, open_config) -> None:
    hits_s = [(make_chunk(f"c{i}"), (i * 37 % 11) / 10) for i in range(10)]
    hits_k = [(make_chunk(f"c{i}"), (i * 53 % 7) / 7) for i in range(0, 10, 2)]
    out = fuse_scores(hits_s, hits_k, open_config)
    scores = [c.combined_score for c in out]
    assert scores == sorted(scores, reverse=True)


def test_cap_without_reranking(make_chunk) -> None:
    config = QueryConfiguration(max_results=2, similarity_threshold=0.0, enable_reranking=False)
    hits = [(make_chunk(f"c{i}"), 0.9 - i / 100) for i in range(10)]
    assert len(fuse_scores(hits, [], config)) == 2


def test_cap_widens_pool_for_reranking(make_chunk) -> None:
    config = QueryConfiguration(max_results=2, similarity_threshold=0.0, enable_reranking=True)
    hits = [(make_chunk(f"c{i}"), 0.9 - i / 100) for i in range(10)]
    assert len(fuse_scores(hits, [], config)) == 4


def test_duplicate_hits_in_one_channel_keep_best_score(make_chunk, open_config) -> None:
    a = make_chunk("a")
    out = fuse_scores([(a, 0.4), (a, 0.9)], [], open_config)
    assert len(out) == 1
    assert out[0].semantic_score == 0.9


def test_single_channel_modes_use_raw_channel_score(make_chunk) -> None:
    semantic_only = QueryConfiguration(search_type=SearchType.SEMANTIC, similarity_threshold=0.0)
    keyword_only = QueryConfiguration(search_type="keyword", similarity_threshold=0.0)

    assert fuse_scores([(make_chunk("a"), 0.8)], [], semantic_only)[0].combined_score == pytest.approx(0.8)
    assert fuse_scores([], [(make_chunk("a"), 0.7)], keyword_only)[0].combined_score == pytest.approx(0.7)
