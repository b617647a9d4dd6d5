"""Query normalization shared by the adapters and the orchestrator."""

from typing import Optional

from ..common.errors import EmptyQueryError


def normalize_query(query: Optional[str]) -> str:
    """Strip ``query``; raise ``EmptyQueryError`` if nothing is left."""
    if query is None or not str(query).strip():
        raise EmptyQueryError()
    return str(query).strip()
