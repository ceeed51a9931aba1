from __future__ import annotations

from typing import List, Sequence

from docqa.core.types import (
    QueryConfiguration,
    RerankedCandidate,
    ScoreBreakdown,
    ScoredCandidate,
    SearchResult,
)


def _to_result(cand: ScoredCandidate) -> SearchResult:
    reranked = isinstance(cand, RerankedCandidate)
    combined = cand.original_combined_score if reranked else cand.combined_score
    chunk = cand.chunk
    return SearchResult(
        chunk_id=chunk.chunk_id,
        document_id=chunk.document_id,
        filename=chunk.filename,
        chunk_index=chunk.chunk_index,
        page=chunk.page,
        text=chunk.text,
        scores=ScoreBreakdown(
            semantic=cand.semantic_score,
            keyword=cand.keyword_score,
            combined=combined,
            final=cand.reranked_score if reranked else combined,
        ),
        reranking_factors=cand.factors if reranked else None,
    )


def assemble_results(candidates: Sequence[ScoredCandidate], max_results: int) -> List[SearchResult]:
    # input order is output order
    return [_to_result(c) for c in candidates[:max_results]]


def search_method_label(config: QueryConfiguration, reranked: bool) -> str:
    label = config.search_type.value
    return f"{label} + reranked" if reranked else label
