import asyncio
import os
import sys

from dotenv import load_dotenv

from docqa.core.config import settings
from docqa.core.logging import configure_logging
from docqa.embeddings.openai_embedder import OpenAIEmbedder
from docqa.indexing.pgvector_store import PGVectorStore
from docqa.rerank.heuristic_reranker import explain_reranking, rerank
from docqa.retrieval.hybrid import ScoreFusionEngine

load_dotenv()
configure_logging(json_output=False, log_level=os.environ.get("LOG_LEVEL", "INFO"))

if len(sys.argv) < 3:
    print("Usage: python scripts/smoke_search.py <user_id> <query>")
    raise SystemExit(1)

user_id, query = sys.argv[1], " ".join(sys.argv[2:])

store = PGVectorStore(os.environ["PG_DSN"])
embedder = OpenAIEmbedder(
    api_key=os.environ["OPENAI_API_KEY"],
    model=settings.embedding_model,
    dimensions=settings.embedding_dimensions,
)
config = settings.query_defaults()

engine = ScoreFusionEngine(store, embedding_dimensions=settings.embedding_dimensions)
fused = asyncio.run(engine.fuse(embedder.embed(query), query, user_id, config))

print("FUSED TOP:")
for i, c in enumerate(fused[:10], start=1):
    print(i, c.chunk.chunk_id, "combined=", round(c.combined_score, 4),
          "| sem:", round(c.semantic_score, 4), "kw:", round(c.keyword_score, 4), "|", c.chunk.text[:80])

reranked = rerank(fused, query, config.reranking)[: config.max_results]

print("\nAFTER RERANK:")
for i, r in enumerate(reranked, start=1):
    print(f"[{i}]", explain_reranking(r))
    print()
