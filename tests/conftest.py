"""Pytest fixtures: chunk factory, a small two-user in-memory corpus, a fake embedder."""
from typing import Callable, List, Optional, Sequence

import pytest

from docqa.core.types import Chunk, Document, QueryConfiguration, ScoredCandidate
from docqa.indexing.memory_store import InMemoryChunkStore

QUERY_VECTOR = [1.0, 0.0, 0.0, 0.0]


def _make_chunk(
    chunk_id: str,
    text: str = "some chunk text",
    chunk_index: int = 0,
    document_id: str = "doc-1",
    user_id: str = "user-1",
    embedding: Optional[Sequence[float]] = None,
    filename: Optional[str] = "guide.pdf",
    page: Optional[int] = None,
) -> Chunk:
    return Chunk(
        chunk_id=chunk_id,
        document_id=document_id,
        user_id=user_id,
        chunk_index=chunk_index,
        text=text,
        page=page,
        embedding=embedding,
        filename=filename,
    )


@pytest.fixture
def make_chunk() -> Callable[..., Chunk]:
    return _make_chunk


@pytest.fixture
def make_candidate() -> Callable[..., ScoredCandidate]:
    def _make(chunk_id: str, combined: float, semantic: float = 0.0, keyword: float = 0.0, **chunk_kwargs):
        return ScoredCandidate(
            chunk=_make_chunk(chunk_id, **chunk_kwargs),
            semantic_score=semantic,
            keyword_score=keyword,
            combined_score=combined,
        )

    return _make


@pytest.fixture
def store() -> InMemoryChunkStore:
    s = InMemoryChunkStore()
    s.add_document(
        Document(
            document_id="doc-1",
            user_id="user-1",
            filename="guide.pdf",
            chunks=(
                _make_chunk("c0", "Diabetes symptoms include thirst and fatigue.", 0,
                            embedding=[1.0, 0.0, 0.0, 0.0], filename=None, page=1),
                _make_chunk("c1", "Treatment of diabetes usually involves insulin.", 1,
                            embedding=[0.8, 0.6, 0.0, 0.0], filename=None, page=1),
                _make_chunk("c2", "Unrelated appendix about billing codes.", 12,
                            embedding=[0.0, 0.0, 1.0, 0.0], filename=None, page=9),
            ),
        )
    )
    s.add_document(
        Document(
            document_id="doc-2",
            user_id="user-2",
            filename="private.pdf",
            chunks=(
                _make_chunk("x0", "Diabetes symptoms for someone else.", 0, document_id="doc-2",
                            user_id="user-2", embedding=[1.0, 0.0, 0.0, 0.0], filename=None),
            ),
        )
    )
    return s


@pytest.fixture
def embed_fn() -> Callable[[str], List[float]]:
    def _embed(text: str) -> List[float]:
        return list(QUERY_VECTOR)

    return _embed


@pytest.fixture
def open_config() -> QueryConfiguration:
    """Hybrid config that keeps everything so tests can inspect raw fusion output."""
    return QueryConfiguration(similarity_threshold=0.0, enable_reranking=False)
