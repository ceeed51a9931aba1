"""Test the pgvector store's SQL parameters and row mapping against a mocked engine."""
from unittest.mock import MagicMock

import pytest

from docqa.indexing import pgvector_store
from docqa.indexing.pgvector_store import PGVectorStore

ROW = {
    "chunk_id": "c0",
    "document_id": "doc-1",
    "user_id": "user-1",
    "filename": "guide.pdf",
    "chunk_index": 2,
    "text": "Diabetes symptoms include thirst.",
    "metadata": {"page": "4"},
}


@pytest.fixture
def engine(monkeypatch) -> MagicMock:
    mock_engine = MagicMock()
    monkeypatch.setattr(pgvector_store, "create_engine", lambda *a, **kw: mock_engine)
    return mock_engine


def _conn(engine: MagicMock, rows) -> MagicMock:
    conn = engine.connect.return_value.__enter__.return_value
    conn.execute.return_value.mappings.return_value.all.return_value = rows
    return conn


def _executed(conn: MagicMock):
    clause, params = conn.execute.call_args.args
    return str(clause), params


class TestPGVectorStore:
    def test_semantic_search_scoped_and_mapped(self, engine) -> None:
        conn = _conn(engine, [{**ROW, "score": 0.83}])

        hits = PGVectorStore("postgresql+psycopg://db").semantic_search([0.5, 0.25], "user-1", 0.6, 8)

        sql, params = _executed(conn)
        assert "d.user_id = :user_id" in sql
        assert params == {"q": "[0.50000000,0.25000000]", "user_id": "user-1", "threshold": 0.6, "k": 8}
        chunk, score = hits[0]
        assert score == 0.83
        assert chunk.chunk_id == "c0"
        assert chunk.page == 4
        assert chunk.filename == "guide.pdf"

    def test_keyword_search_uses_or_query(self, engine) -> None:
        conn = _conn(engine, [])

        assert PGVectorStore("postgresql+psycopg://db").keyword_search("diabetes symptoms", "user-1", 5) == []

        sql, params = _executed(conn)
        assert "'&', '|'" in sql
        assert "ts_rank_cd" in sql
        assert params == {"query": "diabetes symptoms", "user_id": "user-1", "k": 5}

    def test_document_chunks_scoped_to_owner(self, engine) -> None:
        conn = _conn(engine, [ROW])

        chunks = PGVectorStore("postgresql+psycopg://db").get_document_chunks("doc-1", "user-1")

        sql, params = _executed(conn)
        assert "d.user_id = :user_id" in sql
        assert params == {"document_id": "doc-1", "user_id": "user-1"}
        assert [c.chunk_index for c in chunks] == [2]

    def test_user_documents(self, engine) -> None:
        conn = _conn(engine, [{"document_id": "doc-1", "filename": "guide.pdf", "chunks_count": 3}])

        docs = PGVectorStore("postgresql+psycopg://db").get_user_documents("user-1")

        assert _executed(conn)[1] == {"user_id": "user-1"}
        assert docs == [{"document_id": "doc-1", "filename": "guide.pdf", "chunks_count": 3}]

    def test_create_schema_sizes_embedding_column(self, engine) -> None:
        conn = engine.begin.return_value.__enter__.return_value

        PGVectorStore("postgresql+psycopg://db").create_schema(dimensions=384)

        statements = [str(c.args[0]) for c in conn.execute.call_args_list]
        assert any("vector(384)" in s for s in statements)
        assert any("'{}'::jsonb" in s for s in statements)
        assert all(s.strip() for s in statements)
