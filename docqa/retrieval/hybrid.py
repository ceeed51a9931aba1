from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import List, Optional, Protocol, Sequence, Tuple

import structlog

from docqa.core.errors import EmbeddingDimensionError, QueryValidationError, RetrievalError
from docqa.core.types import Chunk, QueryConfiguration, ScoredCandidate, SearchType
from docqa.retrieval.fusion import fuse_scores

_logger = structlog.get_logger()


class ChunkStore(Protocol):
    def semantic_search(
        self, query_embedding: Sequence[float], user_id: str, threshold: float, limit: int
    ) -> List[Tuple[Chunk, float]]: ...

    def keyword_search(self, query_text: str, user_id: str, limit: int) -> List[Tuple[Chunk, float]]: ...


class ScoreFusionEngine:
    def __init__(self, store: ChunkStore, embedding_dimensions: int = 1536):
        self.store = store
        self.embedding_dimensions = embedding_dimensions

    def _check_vector(self, query_vector: Optional[Sequence[float]]) -> None:
        if query_vector is None:
            raise QueryValidationError("a query embedding is required for semantic retrieval")
        if len(query_vector) != self.embedding_dimensions:
            raise EmbeddingDimensionError(self.embedding_dimensions, len(query_vector))

    async def _semantic(
        self, query_vector: Sequence[float], user_id: str, config: QueryConfiguration
    ) -> List[Tuple[Chunk, float]]:
        # hybrid thresholds on the combined score, so the channel must not pre-filter
        threshold = config.similarity_threshold if config.search_type == SearchType.SEMANTIC else 0.0
        try:
            return await asyncio.to_thread(
                self.store.semantic_search, query_vector, user_id, threshold, config.channel_limit
            )
        except Exception as exc:
            raise RetrievalError("semantic", f"semantic retrieval failed: {exc}") from exc

    async def _keyword(self, query_text: str, user_id: str, config: QueryConfiguration) -> List[Tuple[Chunk, float]]:
        try:
            return await asyncio.to_thread(self.store.keyword_search, query_text, user_id, config.channel_limit)
        except Exception as exc:
            raise RetrievalError("keyword", f"keyword retrieval failed: {exc}") from exc

    async def fuse(
        self,
        query_vector: Optional[Sequence[float]],
        query_text: str,
        user_id: str,
        config: QueryConfiguration,
    ) -> List[ScoredCandidate]:
        fused, _ = await self.fuse_with_config(query_vector, query_text, user_id, config)
        return fused

    async def fuse_with_config(
        self,
        query_vector: Optional[Sequence[float]],
        query_text: str,
        user_id: str,
        config: QueryConfiguration,
    ) -> Tuple[List[ScoredCandidate], QueryConfiguration]:
        """
        Run the channels the search type needs (concurrently in hybrid mode),
        then merge them with fuse_scores. A failing channel fails the whole
        call unless config.allow_degraded lets a hybrid query continue on the
        surviving channel, in which case the returned config is the
        single-channel one the scores were actually fused with.
        """
        if config.uses_semantic:
            self._check_vector(query_vector)

        semantic: List[Tuple[Chunk, float]] = []
        keyword: List[Tuple[Chunk, float]] = []

        if config.search_type == SearchType.SEMANTIC:
            semantic = await self._semantic(query_vector, user_id, config)
        elif config.search_type == SearchType.KEYWORD:
            keyword = await self._keyword(query_text, user_id, config)
        else:
            sem_out, kw_out = await asyncio.gather(
                self._semantic(query_vector, user_id, config),
                self._keyword(query_text, user_id, config),
                return_exceptions=True,
            )
            semantic, keyword, config = self._resolve_channels(sem_out, kw_out, config)

        fused = fuse_scores(semantic, keyword, config)
        _logger.info(
            "fusion_completed",
            search_type=config.search_type.value,
            semantic_hits=len(semantic),
            keyword_hits=len(keyword),
            candidates=len(fused),
            threshold=config.similarity_threshold,
        )
        return fused, config

    def _resolve_channels(self, sem_out, kw_out, config: QueryConfiguration):
        for out in (sem_out, kw_out):
            # cancellation and interpreter exits are not channel failures
            if isinstance(out, BaseException) and not isinstance(out, Exception):
                raise out

        failures = [out for out in (sem_out, kw_out) if isinstance(out, Exception)]
        if not failures:
            return sem_out, kw_out, config

        for err in failures:
            _logger.warning(
                "retrieval_channel_failed",
                channel=getattr(err, "channel", "unknown"),
                error=str(err),
                degraded_allowed=config.allow_degraded,
            )

        if len(failures) == 2 or not config.allow_degraded:
            raise failures[0]

        # continue as a single-channel query on whichever channel survived
        if isinstance(sem_out, Exception):
            return [], kw_out, replace(config, search_type=SearchType.KEYWORD)
        return sem_out, [], replace(config, search_type=SearchType.SEMANTIC)
