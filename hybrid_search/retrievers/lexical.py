"""Lexical retrieval adapter."""

import time
from typing import Any, Dict, List, Optional

import structlog

from ..backends.base import LexicalIndex
from ..common.errors import EmptyQueryError, ResponseShapeError
from ..models import Candidate, LEXICAL
from .filters import FilterPredicate
from .query import normalize_query

logger = structlog.get_logger("hybrid_search.retrievers.lexical")


def rows_to_candidates(
    rows: List[Dict[str, Any]],
    source: str,
    score_key: str,
    k: int,
) -> List[Candidate]:
    """Rank rows 1..n in backend order and cap at ``k``.

    The backend is trusted to have sorted by relevance; nothing is re-sorted.
    """
    candidates = []
    for position, row in enumerate(rows[:k], start=1):
        if not isinstance(row, dict) or row.get("id") is None:
            raise ResponseShapeError(
                f"{source} index",
                f"row at position {position} has no id",
                stage="retrieval",
            )
        candidates.append(Candidate.from_row(row, source, position, score_key))
    return candidates


class LexicalRetriever:
    """Executes term-match queries against a ``LexicalIndex``."""

    def __init__(self, index: LexicalIndex):
        self.index = index

    async def retrieve(
        self,
        query: str,
        k: int,
        predicate: Optional[FilterPredicate] = None,
    ) -> List[Candidate]:
        """Return at most ``k`` candidates ranked 1..n.

        An empty query yields ``[]`` without touching the index.
        """
        try:
            query = normalize_query(query)
        except EmptyQueryError:
            return []

        start_time = time.time()
        rows = await self.index.search(query, k, predicate or FilterPredicate())
        candidates = rows_to_candidates(rows, LEXICAL, "lexical_score", k)

        logger.info(
            "Lexical search completed",
            results_count=len(candidates),
            latency_ms=(time.time() - start_time) * 1000,
        )
        return candidates
