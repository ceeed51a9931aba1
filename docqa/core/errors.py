from __future__ import annotations

from typing import Optional


class DocqaError(Exception):
    """Base class for errors raised by the retrieval core."""


class QueryValidationError(DocqaError, ValueError):
    """The caller supplied an unusable query or configuration."""


class EmbeddingDimensionError(QueryValidationError):
    def __init__(self, expected: int, actual: int):
        super().__init__(f"query embedding has {actual} dimensions, expected {expected}")
        self.expected = expected
        self.actual = actual


class RetrievalError(DocqaError, RuntimeError):
    """
    A collaborator (embedding provider or chunk store) failed.
    Always raised `from` the underlying exception so the cause survives.
    """

    def __init__(self, channel: str, message: Optional[str] = None):
        self.channel = channel
        super().__init__(message or f"{channel} retrieval failed")

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__
