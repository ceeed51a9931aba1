from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException
from dotenv import load_dotenv

from docqa.api.schemas import SearchRequest, SearchResponseOut
from docqa.core.config import Settings, settings
from docqa.core.errors import QueryValidationError, RetrievalError
from docqa.core.types import QueryConfiguration
from docqa.embeddings.openai_embedder import OpenAIEmbedder
from docqa.indexing.pgvector_store import PGVectorStore
from docqa.retrieval.search_pipeline import SearchPipeline

load_dotenv()
router = APIRouter()


def get_settings() -> Settings:
    return settings


@lru_cache(maxsize=1)
def get_search_pipeline() -> SearchPipeline:
    if not settings.pg_dsn:
        raise RuntimeError("PG_DSN is not configured")
    store = PGVectorStore(settings.pg_dsn)
    embedder = OpenAIEmbedder(
        api_key=settings.openai_api_key or "",
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
    )
    return SearchPipeline(store, embed_fn=embedder, embedding_dimensions=settings.embedding_dimensions)


def build_query_configuration(req: SearchRequest, cfg: Settings) -> QueryConfiguration:
    return QueryConfiguration(
        search_type=req.search_type,
        max_results=req.max_results,
        semantic_weight=req.semantic_weight,
        keyword_weight=req.keyword_weight,
        similarity_threshold=req.similarity_threshold,
        enable_reranking=req.enable_reranking,
        allow_degraded=cfg.allow_degraded_retrieval,
        rerank_pool_multiplier=cfg.rerank_pool_multiplier,
        reranking=cfg.reranking_options(),
    )


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.post("/search", response_model=SearchResponseOut)
async def search(
    req: SearchRequest,
    pipeline: SearchPipeline = Depends(get_search_pipeline),
    cfg: Settings = Depends(get_settings),
) -> SearchResponseOut:
    try:
        config = build_query_configuration(req, cfg)
        resp = await pipeline.search(req.query, req.user_id, config)
    except QueryValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RetrievalError as exc:
        detail = {"error": str(exc), "channel": exc.channel, "cause": repr(exc.cause) if exc.cause else None}
        raise HTTPException(status_code=502, detail=detail) from exc

    return SearchResponseOut.from_response(resp)
