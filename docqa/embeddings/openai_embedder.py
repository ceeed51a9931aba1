from __future__ import annotations

from typing import List, Optional

from openai import OpenAI


class OpenAIEmbedder:
    """
    Query embedding provider. Errors from the API propagate unchanged; the
    retrieval core does not retry.
    """

    def __init__(self, api_key: str, model: str = "text-embedding-3-small", dimensions: Optional[int] = None):
        self.client = OpenAI(api_key=api_key)
        self.model = model
        self.dimensions = dimensions

    def embed(self, text: str) -> List[float]:
        kwargs = {"model": self.model, "input": text}
        if self.dimensions is not None:
            kwargs["dimensions"] = self.dimensions
        r = self.client.embeddings.create(**kwargs)
        return r.data[0].embedding

    __call__ = embed
