"""Error taxonomy for hybrid search.

Every error carries an optional ``stage`` naming where the request failed
(``request``, ``retrieval``, ``fusion``, ``rerank``) so callers can report
which part of the pipeline broke without parsing messages.
"""

from typing import Optional


class HybridSearchError(Exception):
    """Base exception for hybrid search operations."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class ValidationError(HybridSearchError):
    """Malformed request parameters (caller's fault)."""

    def __init__(self, message: str):
        super().__init__(message, stage="request")


class EmptyQueryError(HybridSearchError):
    """Empty or whitespace-only query.

    Treated as a valid no-op: adapters and the orchestrator catch it and
    return an empty result.
    """

    def __init__(self, message: str = "Query is empty"):
        super().__init__(message, stage="request")


class UpstreamError(HybridSearchError):
    """An embedding, index, or rerank provider call failed."""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        stage: Optional[str] = None,
    ):
        super().__init__(f"{provider}: {message}", stage=stage)
        self.provider = provider
        self.status_code = status_code


class ResponseShapeError(HybridSearchError):
    """A provider returned data that cannot be interpreted."""

    def __init__(self, provider: str, message: str, stage: Optional[str] = None):
        super().__init__(f"{provider}: {message}", stage=stage)
        self.provider = provider
