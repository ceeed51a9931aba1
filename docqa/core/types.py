from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from docqa.core.errors import QueryValidationError


@dataclass(frozen=True)
class Chunk:
    chunk_id: str
    document_id: str
    user_id: str
    chunk_index: int            # 0-based position within the document
    text: str
    page: Optional[int] = None
    embedding: Optional[Sequence[float]] = field(default=None, repr=False, compare=False)
    filename: Optional[str] = None   # denormalised from the owning document
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class Document:
    document_id: str
    user_id: str
    filename: str
    chunks: Tuple[Chunk, ...] = ()

    def ordered_chunks(self) -> List[Chunk]:
        return sorted(self.chunks, key=lambda c: c.chunk_index)


class SearchType(str, Enum):
    SEMANTIC = "semantic"
    KEYWORD = "keyword"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class ScoredCandidate:
    chunk: Chunk
    semantic_score: float = 0.0     # 0.0 when the semantic channel did not see the chunk
    keyword_score: float = 0.0      # 0.0 when the keyword channel did not see the chunk
    combined_score: float = 0.0


@dataclass(frozen=True)
class RerankingFactors:
    length_penalty: float
    position_boost: float
    keyword_density: float
    query_coverage: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "length_penalty": self.length_penalty,
            "position_boost": self.position_boost,
            "keyword_density": self.keyword_density,
            "query_coverage": self.query_coverage,
        }


@dataclass(frozen=True)
class RerankedCandidate(ScoredCandidate):
    original_combined_score: float = 0.0
    factors: Optional[RerankingFactors] = None
    reranked_score: float = 0.0


@dataclass(frozen=True)
class RerankingOptions:
    ideal_chunk_length: int = 500
    length_penalty_weight: float = 0.1
    position_boost_weight: float = 0.15
    keyword_density_weight: float = 0.2
    query_coverage_weight: float = 0.25
    reranking_weight: float = 0.3   # blend of boosted score vs original fused score

    def __post_init__(self) -> None:
        if self.ideal_chunk_length <= 0:
            raise QueryValidationError("ideal_chunk_length must be positive")


@dataclass(frozen=True)
class QueryConfiguration:
    """
    Per-call retrieval parameters. Built fresh for every request and never
    mutated, so concurrent searches share nothing.
    """

    search_type: SearchType = SearchType.HYBRID
    max_results: int = 10
    semantic_weight: float = 0.7
    keyword_weight: float = 0.3
    similarity_threshold: float = 0.6
    enable_reranking: bool = True
    allow_degraded: bool = False
    rerank_pool_multiplier: int = 2
    reranking: RerankingOptions = field(default_factory=RerankingOptions)

    def __post_init__(self) -> None:
        # accept plain strings coming from settings or the API layer
        object.__setattr__(self, "search_type", SearchType(self.search_type))
        if self.max_results <= 0:
            raise QueryValidationError("max_results must be greater than 0")
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise QueryValidationError("similarity_threshold must be within [0, 1]")
        if self.semantic_weight < 0 or self.keyword_weight < 0:
            raise QueryValidationError("weights must be non-negative")
        if self.rerank_pool_multiplier < 1:
            raise QueryValidationError("rerank_pool_multiplier must be at least 1")

    @property
    def uses_semantic(self) -> bool:
        return self.search_type in (SearchType.SEMANTIC, SearchType.HYBRID)

    @property
    def uses_keyword(self) -> bool:
        return self.search_type in (SearchType.KEYWORD, SearchType.HYBRID)

    @property
    def effective_weights(self) -> Tuple[float, float]:
        # single-channel modes score on the raw channel value
        if self.search_type == SearchType.SEMANTIC:
            return 1.0, 0.0
        if self.search_type == SearchType.KEYWORD:
            return 0.0, 1.0
        return self.semantic_weight, self.keyword_weight

    @property
    def candidate_pool_size(self) -> int:
        if self.enable_reranking:
            return self.max_results * self.rerank_pool_multiplier
        return self.max_results

    @property
    def channel_limit(self) -> int:
        return self.candidate_pool_size * 2


@dataclass(frozen=True)
class ScoreBreakdown:
    semantic: float
    keyword: float
    combined: float
    final: float


@dataclass(frozen=True)
class SearchResult:
    chunk_id: str
    document_id: str
    filename: Optional[str]
    chunk_index: int
    page: Optional[int]
    text: str
    scores: ScoreBreakdown
    reranking_factors: Optional[RerankingFactors] = None


@dataclass(frozen=True)
class SearchResponse:
    query: str
    results: List[SearchResult]
    search_method: str

    @property
    def results_count(self) -> int:
        return len(self.results)
