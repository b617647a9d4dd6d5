"""Vector retrieval adapter."""

import time
from typing import List, Optional

import structlog

from ..backends.base import EmbeddingProvider, VectorIndex
from ..common.errors import EmptyQueryError
from ..models import Candidate, VECTOR
from .filters import FilterPredicate
from .lexical import rows_to_candidates
from .query import normalize_query

logger = structlog.get_logger("hybrid_search.retrievers.vector")


class VectorRetriever:
    """Embeds the query and runs a nearest-neighbor search.

    Parameters
    - index: the ``VectorIndex`` to query
    - embedder: resolves the query text to a vector
    - num_candidates: ANN pool size; ``None`` uses ``k`` for each call
    """

    def __init__(
        self,
        index: VectorIndex,
        embedder: EmbeddingProvider,
        num_candidates: Optional[int] = None,
    ):
        self.index = index
        self.embedder = embedder
        self.num_candidates = num_candidates

    async def retrieve(
        self,
        query: str,
        k: int,
        predicate: Optional[FilterPredicate] = None,
    ) -> List[Candidate]:
        """Return at most ``k`` candidates ranked 1..n.

        Embedding failures propagate unchanged.
        """
        try:
            query = normalize_query(query)
        except EmptyQueryError:
            return []

        start_time = time.time()
        vector = await self.embedder.embed(query)

        pool = max(self.num_candidates or k, k)
        rows = await self.index.search(
            vector,
            k,
            predicate or FilterPredicate(),
            num_candidates=pool,
        )
        candidates = rows_to_candidates(rows, VECTOR, "similarity_score", k)

        logger.info(
            "Vector search completed",
            results_count=len(candidates),
            num_candidates=pool,
            latency_ms=(time.time() - start_time) * 1000,
        )
        return candidates
