from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Callable, List, Optional, Sequence

import structlog

from docqa.core.errors import QueryValidationError, RetrievalError
from docqa.core.types import QueryConfiguration, ScoredCandidate, SearchResponse, SearchType
from docqa.rerank.heuristic_reranker import rerank
from docqa.retrieval.assembler import assemble_results, search_method_label
from docqa.retrieval.hybrid import ChunkStore, ScoreFusionEngine

_logger = structlog.get_logger()

EmbedFn = Callable[[str], Sequence[float]]


class SearchPipeline:
    """
    query -> embedding -> fusion -> optional re-rank -> capped result list.
    Holds only its collaborators; every search is request-scoped.
    """

    def __init__(self, store: ChunkStore, embed_fn: EmbedFn, embedding_dimensions: int = 1536):
        """
        embed_fn(query: str) -> List[float]
        Injected so the embedding provider can be swapped or faked.
        """
        self.embed_fn = embed_fn
        self.fusion = ScoreFusionEngine(store, embedding_dimensions=embedding_dimensions)

    async def _embed(self, query: str, config: QueryConfiguration):
        try:
            return await asyncio.to_thread(self.embed_fn, query), config
        except Exception as exc:
            if config.search_type == SearchType.HYBRID and config.allow_degraded:
                _logger.warning("embedding_failed_degrading_to_keyword", error=str(exc))
                return None, replace(config, search_type=SearchType.KEYWORD)
            raise RetrievalError("embedding", f"query embedding failed: {exc}") from exc

    async def search(self, query: str, user_id: str, config: Optional[QueryConfiguration] = None) -> SearchResponse:
        config = config or QueryConfiguration()
        if not query or not query.strip():
            raise QueryValidationError("query must be a non-empty string")
        if not user_id:
            raise QueryValidationError("user_id is required")
        query = query.strip()

        query_vector: Optional[Sequence[float]] = None
        if config.uses_semantic:
            query_vector, config = await self._embed(query, config)

        fused, config = await self.fusion.fuse_with_config(query_vector, query, user_id, config)

        ranked: List[ScoredCandidate] = fused
        if config.enable_reranking:
            ranked = rerank(fused, query, config.reranking)

        results = assemble_results(ranked, config.max_results)
        method = search_method_label(config, reranked=config.enable_reranking)

        _logger.info(
            "search_completed",
            user_id=user_id,
            search_method=method,
            candidates=len(fused),
            results=len(results),
        )
        return SearchResponse(query=query, results=results, search_method=method)
