from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from rank_bm25 import BM25Plus

from docqa.core.types import Chunk, Document


_WORD_RE = re.compile(r"[A-Za-z0-9_]+")


def simple_tokenize(s: str) -> List[str]:
    return [t.lower() for t in _WORD_RE.findall(s)]


def cosine_similarity(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Row-wise cosine similarity; zero-norm rows score 0."""
    q_norm = np.linalg.norm(query)
    row_norms = np.linalg.norm(matrix, axis=1)
    denom = row_norms * q_norm
    sims = np.zeros(matrix.shape[0], dtype=float)
    nonzero = denom > 0
    sims[nonzero] = (matrix[nonzero] @ query) / denom[nonzero]
    return sims


@dataclass
class InMemoryChunkStore:
    """
    Process-local chunk store implementing the same two search methods as
    PGVectorStore. Semantic scores are cosine similarities clamped to [0, 1];
    keyword scores are BM25+ scores mapped through s / (s + 1), computed over
    the user's chunks that share at least one token with the query.
    """

    documents: Dict[str, Document] = field(default_factory=dict)
    dimensions: Optional[int] = None

    def add_document(self, document: Document) -> None:
        # nothing is recorded until every chunk has been checked
        dims = self.dimensions
        for chunk in document.chunks:
            if chunk.document_id != document.document_id or chunk.user_id != document.user_id:
                raise ValueError(f"chunk {chunk.chunk_id} does not belong to document {document.document_id}")
            if chunk.embedding is None:
                continue
            if dims is None:
                dims = len(chunk.embedding)
            elif len(chunk.embedding) != dims:
                raise ValueError(f"chunk {chunk.chunk_id} has {len(chunk.embedding)} dimensions, store uses {dims}")
        self.dimensions = dims
        self.documents[document.document_id] = document

    def user_chunks(self, user_id: str) -> List[Chunk]:
        out: List[Chunk] = []
        for doc in self.documents.values():
            if doc.user_id != user_id:
                continue
            for c in doc.ordered_chunks():
                if c.filename is None:
                    c = replace(c, filename=doc.filename)
                out.append(c)
        return out

    def semantic_search(
        self,
        query_embedding: Sequence[float],
        user_id: str,
        threshold: float = 0.0,
        limit: int = 20,
    ) -> List[Tuple[Chunk, float]]:
        chunks = [c for c in self.user_chunks(user_id) if c.embedding is not None]
        if not chunks:
            return []
        if self.dimensions is not None and len(query_embedding) != self.dimensions:
            raise ValueError(f"query has {len(query_embedding)} dimensions, store uses {self.dimensions}")

        matrix = np.asarray([c.embedding for c in chunks], dtype=float)
        sims = np.clip(cosine_similarity(np.asarray(query_embedding, dtype=float), matrix), 0.0, 1.0)

        ranked = sorted(range(len(chunks)), key=lambda i: (-sims[i], chunks[i].chunk_id))
        return [(chunks[i], float(sims[i])) for i in ranked if sims[i] >= threshold][:limit]

    def keyword_search(self, query_text: str, user_id: str, limit: int = 20) -> List[Tuple[Chunk, float]]:
        q_tokens = simple_tokenize(query_text)
        chunks = self.user_chunks(user_id)
        if not q_tokens or not chunks:
            return []

        tokenized = [simple_tokenize(c.text) for c in chunks]
        wanted = set(q_tokens)
        matching = [i for i, toks in enumerate(tokenized) if wanted.intersection(toks)]
        if not matching:
            return []

        bm25 = BM25Plus(tokenized)
        scores = bm25.get_scores(q_tokens)

        ranked = sorted(matching, key=lambda i: (-scores[i], chunks[i].chunk_id))[:limit]
        return [(chunks[i], _squash(float(scores[i]))) for i in ranked]


def _squash(score: float) -> float:
    # same normalisation as ts_rank_cd(..., 32)
    score = max(score, 0.0)
    return score / (score + 1.0)

