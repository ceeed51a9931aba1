from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from docqa.core.types import Chunk, QueryConfiguration, ScoredCandidate


Hit = Tuple[Chunk, float]


def _best_by_chunk(hits: Sequence[Hit]) -> Dict[str, Hit]:
    # a channel may report the same chunk twice; keep its best score
    best: Dict[str, Hit] = {}
    for chunk, score in hits:
        prev = best.get(chunk.chunk_id)
        if prev is None or score > prev[1]:
            best[chunk.chunk_id] = (chunk, score)
    return best


def fuse_scores(
    semantic: Sequence[Hit],
    keyword: Sequence[Hit],
    config: QueryConfiguration,
) -> List[ScoredCandidate]:
    """
    Merge semantic + keyword hits by chunk identity (full outer union) with a
    weighted sum:

        combined(c) = ws * semantic(c) + wk * keyword(c)

    A chunk seen by one channel only scores 0.0 on the other. Candidates below
    the similarity threshold are dropped, the rest are ordered by combined
    score with chunk_id breaking exact ties, then capped to the candidate pool.
    """
    w_semantic, w_keyword = config.effective_weights

    # Map chunk_id -> (chunk, semantic_score, keyword_score)
    seen: Dict[str, Tuple[Chunk, float, float]] = {}

    for cid, (chunk, score) in _best_by_chunk(semantic).items():
        seen[cid] = (chunk, float(score), 0.0)

    for cid, (chunk, score) in _best_by_chunk(keyword).items():
        if cid in seen:
            known, s_score, _ = seen[cid]
            seen[cid] = (known, s_score, float(score))
        else:
            seen[cid] = (chunk, 0.0, float(score))

    fused: List[ScoredCandidate] = []
    for chunk, s_score, k_score in seen.values():
        combined = s_score * w_semantic + k_score * w_keyword
        if combined < config.similarity_threshold:
            continue
        fused.append(
            ScoredCandidate(
                chunk=chunk,
                semantic_score=s_score,
                keyword_score=k_score,
                combined_score=combined,
            )
        )

    fused.sort(key=lambda x: (-x.combined_score, x.chunk.chunk_id))
    return fused[: config.candidate_pool_size]
