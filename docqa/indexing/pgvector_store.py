from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from docqa.core.types import Chunk


SCHEMA_SQL = """
CREATE EXTENSION IF NOT EXISTS vector;

CREATE TABLE IF NOT EXISTS documents (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id VARCHAR(255) NOT NULL,
    filename VARCHAR(500) NOT NULL,
    status VARCHAR(50) DEFAULT 'processing',
    uploaded_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    metadata JSONB DEFAULT '{{}}'::jsonb
);

CREATE TABLE IF NOT EXISTS chunks (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    document_id UUID NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    chunk_index INTEGER NOT NULL,
    text TEXT NOT NULL,
    embedding vector({dimensions}),
    metadata JSONB DEFAULT '{{}}'::jsonb
);

CREATE INDEX IF NOT EXISTS idx_documents_user_id ON documents(user_id);
CREATE INDEX IF NOT EXISTS idx_chunks_document_id ON chunks(document_id);
CREATE INDEX IF NOT EXISTS idx_chunks_embedding ON chunks USING hnsw (embedding vector_cosine_ops);
CREATE INDEX IF NOT EXISTS idx_chunks_text_fts ON chunks USING gin (to_tsvector('english', text));
"""

_CHUNK_COLUMNS = """
    c.id::text AS chunk_id, c.document_id::text AS document_id, d.user_id,
    d.filename, c.chunk_index, c.text, c.metadata
"""


class PGVectorStore:
    """
    Read side of the chunk store. Only chunks of documents whose processing
    has completed are visible, and every query is scoped to one user.
    """

    def __init__(self, dsn: str):
        self.engine: Engine = create_engine(dsn, pool_pre_ping=True, future=True)

    def create_schema(self, dimensions: int = 1536) -> None:
        with self.engine.begin() as conn:
            for stmt in SCHEMA_SQL.format(dimensions=dimensions).split(";"):
                if stmt.strip():
                    conn.execute(text(stmt))

    def semantic_search(
        self,
        query_embedding: Sequence[float],
        user_id: str,
        threshold: float = 0.0,
        limit: int = 20,
    ) -> List[Tuple[Chunk, float]]:
        """
        Returns (Chunk, similarity) with similarity = 1 - cosine distance,
        floored at 0, sorted descending.
        """
        params: Dict[str, Any] = {
            "q": _to_pgvector_literal(query_embedding),
            "user_id": user_id,
            "threshold": threshold,
            "k": limit,
        }

        # Use a casted parameter for the query vector to avoid inlining large literals.
        sql = text(f"""
        SELECT {_CHUNK_COLUMNS},
               GREATEST(0, 1 - (c.embedding <=> CAST(:q AS vector))) AS score
        FROM chunks c
        JOIN documents d ON d.id = c.document_id
        WHERE d.user_id = :user_id
          AND d.status = 'completed'
          AND c.embedding IS NOT NULL
          AND 1 - (c.embedding <=> CAST(:q AS vector)) >= :threshold
        ORDER BY c.embedding <=> CAST(:q AS vector), c.id
        LIMIT :k;
        """)

        with self.engine.connect() as conn:
            rows = conn.execute(sql, params).mappings().all()
        return [(_row_to_chunk(r), float(r["score"])) for r in rows]

    def keyword_search(self, query_text: str, user_id: str, limit: int = 20) -> List[Tuple[Chunk, float]]:
        """
        Full-text match with the query's lexemes OR-ed together. ts_rank_cd
        normalisation 32 maps a rank r to r / (r + 1), which keeps scores in [0, 1).
        """
        sql = text(f"""
        WITH q AS (
            SELECT NULLIF(replace(plainto_tsquery('english', :query)::text, '&', '|'), '')::tsquery AS tsq
        )
        SELECT {_CHUNK_COLUMNS},
               ts_rank_cd(to_tsvector('english', c.text), q.tsq, 32) AS score
        FROM chunks c
        JOIN documents d ON d.id = c.document_id
        CROSS JOIN q
        WHERE d.user_id = :user_id
          AND d.status = 'completed'
          AND q.tsq IS NOT NULL
          AND to_tsvector('english', c.text) @@ q.tsq
        ORDER BY score DESC, c.id
        LIMIT :k;
        """)

        with self.engine.connect() as conn:
            rows = conn.execute(sql, {"query": query_text, "user_id": user_id, "k": limit}).mappings().all()
        return [(_row_to_chunk(r), float(r["score"])) for r in rows]

    def get_document_chunks(self, document_id: str, user_id: str) -> List[Chunk]:
        sql = text(f"""
        SELECT {_CHUNK_COLUMNS}
        FROM chunks c
        JOIN documents d ON d.id = c.document_id
        WHERE c.document_id = CAST(:document_id AS uuid)
          AND d.user_id = :user_id
        ORDER BY c.chunk_index;
        """)
        with self.engine.connect() as conn:
            rows = conn.execute(sql, {"document_id": document_id, "user_id": user_id}).mappings().all()
        return [_row_to_chunk(r) for r in rows]

    def get_user_documents(self, user_id: str) -> List[Dict[str, Any]]:
        sql = text("""
        SELECT d.id::text AS document_id, d.filename, d.status, d.uploaded_at,
               COUNT(c.id) AS chunks_count
        FROM documents d
        LEFT JOIN chunks c ON c.document_id = d.id
        WHERE d.user_id = :user_id
        GROUP BY d.id
        ORDER BY d.uploaded_at DESC;
        """)
        with self.engine.connect() as conn:
            return [dict(r) for r in conn.execute(sql, {"user_id": user_id}).mappings().all()]


def _row_to_chunk(r: Mapping[str, Any]) -> Chunk:
    metadata = r["metadata"] or {}
    return Chunk(
        chunk_id=r["chunk_id"],
        document_id=r["document_id"],
        user_id=r["user_id"],
        chunk_index=int(r["chunk_index"]),
        text=r["text"],
        page=_page_from_metadata(metadata),
        filename=r["filename"],
        metadata=metadata,
    )


def _page_from_metadata(metadata: Mapping[str, Any]) -> Optional[int]:
    p = metadata.get("page") if isinstance(metadata, Mapping) else None
    if p is None:
        return None
    try:
        return int(p)
    except (TypeError, ValueError):
        return None


def _to_pgvector_literal(vec: Sequence[float]) -> str:
    # pgvector accepts array-like string: '[1,2,3]'
    return "[" + ",".join(f"{x:.8f}" for x in vec) + "]"
