from __future__ import annotations
from typing import List, Sequence

from docqa.core.types import SearchResult


SYSTEM_PROMPT = """You are a Document Assistant answering questions about the user's own uploaded documents.

You MUST follow these rules:
1) Use ONLY the provided CONTEXT. Do not use outside knowledge.
2) Cite every claim with the source numbers of the CONTEXT, e.g. [1] or [2][3].
3) Cite ONLY source numbers that appear in AVAILABLE SOURCES.
4) If the CONTEXT does not contain the answer, reply exactly:
   I don't know based on the provided documents.
"""


def _source_label(r: SearchResult) -> str:
    page = f" (Page {r.page})" if r.page else ""
    return f"{r.filename or r.document_id}{page}"


def format_sources(results: Sequence[SearchResult]) -> List[str]:
    return [f"[{i}] {_source_label(r)}" for i, r in enumerate(results, start=1)]


def build_context_block(results: Sequence[SearchResult]) -> str:
    ctx_lines = []
    for i, r in enumerate(results, start=1):
        ctx_lines.append(f"[{i}] Source: {_source_label(r)}\nContent: {r.text}")
    return "\n\n".join(ctx_lines)


def build_user_prompt(query: str, results: Sequence[SearchResult]) -> str:
    source_list = "\n".join(format_sources(results))
    context_block = build_context_block(results)

    return f"""AVAILABLE SOURCES:
{source_list}

CONTEXT:
{context_block}

QUESTION:
{query}

INSTRUCTIONS:
- Answer the QUESTION using only the CONTEXT.
- Add citations like [1], [2] for every claim; include several when a claim spans sources.
- If not enough information, say "I don't know based on the provided documents."
"""
