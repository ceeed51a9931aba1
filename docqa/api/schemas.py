from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List

from docqa.core.types import SearchResponse, SearchResult, SearchType


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SearchRequest(_CamelModel):
    query: str = Field(..., min_length=1)
    user_id: str = Field("demo-user", alias="userId", min_length=1)
    search_type: SearchType = Field(SearchType.HYBRID, alias="searchType")
    max_results: int = Field(10, alias="maxResults", gt=0)
    semantic_weight: float = Field(0.7, alias="semanticWeight", ge=0)
    keyword_weight: float = Field(0.3, alias="keywordWeight", ge=0)
    similarity_threshold: float = Field(0.6, alias="similarityThreshold", ge=0, le=1)
    enable_reranking: bool = Field(True, alias="enableReranking")


class Scores(BaseModel):
    semantic: float
    keyword: float
    combined: float
    final: float


class RerankingFactorsOut(BaseModel):
    length_penalty: float
    position_boost: float
    keyword_density: float
    query_coverage: float


class SearchResultOut(_CamelModel):
    chunk_id: str = Field(..., alias="chunkId")
    document_id: str = Field(..., alias="documentId")
    filename: Optional[str] = None
    chunk_index: int = Field(..., alias="chunkIndex")
    page: Optional[int] = None
    text: str
    scores: Scores
    reranking_factors: Optional[RerankingFactorsOut] = Field(None, alias="rerankingFactors")

    @classmethod
    def from_result(cls, r: SearchResult) -> "SearchResultOut":
        return cls(
            chunk_id=r.chunk_id,
            document_id=r.document_id,
            filename=r.filename,
            chunk_index=r.chunk_index,
            page=r.page,
            text=r.text,
            scores=Scores(
                semantic=r.scores.semantic,
                keyword=r.scores.keyword,
                combined=r.scores.combined,
                final=r.scores.final,
            ),
            reranking_factors=(
                RerankingFactorsOut(**r.reranking_factors.as_dict()) if r.reranking_factors else None
            ),
        )


class SearchResponseOut(_CamelModel):
    query: str
    results: List[SearchResultOut]
    results_count: int = Field(..., alias="resultsCount")
    search_method: str = Field(..., alias="searchMethod")

    @classmethod
    def from_response(cls, resp: SearchResponse) -> "SearchResponseOut":
        return cls(
            query=resp.query,
            results=[SearchResultOut.from_result(r) for r in resp.results],
            results_count=resp.results_count,
            search_method=resp.search_method,
        )
