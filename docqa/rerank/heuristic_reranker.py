"""
Heuristic second-pass re-ranker.

The fused retrieval score is blind to where a chunk sits in its document, how
long it is, and how much of the literal query it contains. Four factors, each
in [0, 1], correct for that:

- length_penalty:  1 - min(|len(text) - ideal| / ideal, 1)
- position_boost:  max(0, 1 - 0.1 * chunk_index)
- keyword_density: share of query terms (stop words removed) found in the text
- query_coverage:  share of all query words found in the text

    boost    = sum(factor * factor_weight)
    reranked = clamp01(base * (1 - Wr) + (base + boost) * Wr)

where base is the fused combined score and Wr the reranking weight.

Term rules are fixed so scores are reproducible: the query is lower-cased,
split on whitespace, each token has leading/trailing ASCII punctuation
stripped, and only tokens longer than two characters are kept. Query terms
additionally drop STOP_WORDS. A term "appears" in a chunk when it is a
substring of the lower-cased chunk text.
"""
from __future__ import annotations

import math
import string
from numbers import Real
from typing import Iterable, List, Optional, Sequence

import structlog

from docqa.core.types import (
    RerankedCandidate,
    RerankingFactors,
    RerankingOptions,
    ScoredCandidate,
)

_logger = structlog.get_logger()

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "up", "about", "into", "through", "during",
    "before", "after", "above", "below", "between", "among", "under", "over",
    "is", "are", "was", "were", "be", "been", "being", "have", "has", "had",
    "do", "does", "did", "will", "would", "could", "should", "may", "might",
    "must", "can", "shall", "this", "that", "these", "those", "i", "you",
    "he", "she", "it", "we", "they", "me", "him", "her", "us", "them",
})

MIN_TERM_LENGTH = 3
POSITION_DECAY = 0.1


def query_words(query: str) -> List[str]:
    words = (w.strip(string.punctuation) for w in (query or "").lower().split())
    return [w for w in words if len(w) >= MIN_TERM_LENGTH]


def extract_query_terms(query: str) -> List[str]:
    return [w for w in query_words(query) if w not in STOP_WORDS]


def _fraction_present(terms: Sequence[str], text: str) -> float:
    if not terms:
        return 0.0
    return sum(1 for t in terms if t in text) / len(terms)


def _clamp01(x: float) -> float:
    return min(1.0, max(0.0, x))


def compute_factors(
    candidate: ScoredCandidate,
    words: Sequence[str],
    terms: Sequence[str],
    options: RerankingOptions,
) -> RerankingFactors:
    raw_text = candidate.chunk.text or ""
    text = raw_text.lower()
    ideal = options.ideal_chunk_length

    return RerankingFactors(
        length_penalty=1.0 - min(abs(len(raw_text) - ideal) / ideal, 1.0),
        position_boost=max(0.0, 1.0 - POSITION_DECAY * candidate.chunk.chunk_index),
        keyword_density=_fraction_present(terms, text),
        query_coverage=_fraction_present(words, text),
    )


def _is_scorable(candidate: ScoredCandidate) -> bool:
    chunk = getattr(candidate, "chunk", None)
    if chunk is None:
        return False
    if not isinstance(getattr(chunk, "text", None), (str, type(None))):
        return False
    index = getattr(chunk, "chunk_index", None)
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        return False
    base = _base_score(candidate)
    return isinstance(base, Real) and not isinstance(base, bool) and math.isfinite(base)


def _base_score(candidate: ScoredCandidate) -> float:
    # re-ranking an already re-ranked list starts again from the fused score
    if isinstance(candidate, RerankedCandidate):
        return candidate.original_combined_score
    return candidate.combined_score


def rerank(
    candidates: Optional[Iterable[ScoredCandidate]],
    query: str,
    options: RerankingOptions = RerankingOptions(),
) -> List[RerankedCandidate]:
    """
    Score every candidate and return them sorted by reranked_score, highest
    first. The sort is stable, so exact ties keep the input order (which, for
    fused candidates, is combined score then chunk_id).
    Candidates that cannot be scored (no chunk, a missing or negative
    chunk_index, a non-numeric base score) are dropped, never raised on.
    """
    if not candidates:
        return []

    words = query_words(query)
    terms = extract_query_terms(query)

    out: List[RerankedCandidate] = []
    for cand in candidates:
        if not _is_scorable(cand):
            chunk_id = getattr(getattr(cand, "chunk", None), "chunk_id", None)
            _logger.warning("rerank_candidate_skipped", chunk_id=chunk_id)
            continue
        base = _base_score(cand)
        factors = compute_factors(cand, words, terms, options)
        boost = (
            factors.length_penalty * options.length_penalty_weight
            + factors.position_boost * options.position_boost_weight
            + factors.keyword_density * options.keyword_density_weight
            + factors.query_coverage * options.query_coverage_weight
        )
        wr = options.reranking_weight
        score = _clamp01(base * (1 - wr) + (base + boost) * wr)

        out.append(
            RerankedCandidate(
                chunk=cand.chunk,
                semantic_score=cand.semantic_score,
                keyword_score=cand.keyword_score,
                combined_score=base,
                original_combined_score=base,
                factors=factors,
                reranked_score=score,
            )
        )

    out.sort(key=lambda r: r.reranked_score, reverse=True)
    return out


def explain_reranking(result: RerankedCandidate) -> str:
    f = result.factors
    lines = [
        f'Reranking analysis for "{result.chunk.filename or result.chunk.document_id}" '
        f"(section {result.chunk.chunk_index + 1}):",
        f"- Original score: {result.original_combined_score * 100:.1f}%",
        f"- Reranked score: {result.reranked_score * 100:.1f}%",
    ]
    if f is not None:
        lines += [
            "Factors:",
            f"- Length penalty: {f.length_penalty * 100:.1f}% (ideal length preference)",
            f"- Position boost: {f.position_boost * 100:.1f}% (earlier sections preferred)",
            f"- Keyword density: {f.keyword_density * 100:.1f}% (query term concentration)",
            f"- Query coverage: {f.query_coverage * 100:.1f}% (query word coverage)",
        ]
    lines += [
        "Score breakdown:",
        f"- Semantic: {result.semantic_score * 100:.1f}%",
        f"- Keyword: {result.keyword_score * 100:.1f}%",
        f"- Combined: {result.combined_score * 100:.1f}%",
    ]
    return "\n".join(lines)
