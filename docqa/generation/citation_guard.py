from __future__ import annotations
import re
from typing import Any, Dict, List, Sequence, Set

from docqa.core.types import SearchResult


_CIT_RE = re.compile(r"\[(\d+)\]")

def extract_citations(text: str) -> Set[int]:
    return {int(n) for n in _CIT_RE.findall(text or "")}

def validate_citations(answer: str, results: Sequence[SearchResult]) -> bool:
    used = extract_citations(answer)
    # Must cite at least once, and every number must name a provided source
    return len(used) > 0 and all(1 <= n <= len(results) for n in used)

def safe_fallback() -> str:
    return "I don't know based on the provided documents."

def cited_sources(answer: str, results: Sequence[SearchResult]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for n in sorted(extract_citations(answer)):
        if not 1 <= n <= len(results):
            continue
        r = results[n - 1]
        out.append({
            "index": n,
            "chunk_id": r.chunk_id,
            "document_id": r.document_id,
            "filename": r.filename,
            "page": r.page,
        })
    return out
