"""Search manager for hybrid lexical and vector search.

Runs the lexical and vector retrievers concurrently, merges their results
with the requested fusion strategy, and optionally reranks the fused list
with a cross-encoder. The flow is linear:
``Idle -> FanOut -> Fuse -> (Rerank?) -> Done``.
"""

import asyncio
import time
from typing import Any, Awaitable, List, Optional, Tuple

import structlog

from ..common.config import SearchConfig
from ..common.errors import EmptyQueryError, HybridSearchError, UpstreamError, ValidationError
from ..common.logging import request_context
from ..common.metrics import MetricsCollector
from ..models import Candidate, LEXICAL, VECTOR
from ..ranking.fusion import create_fusion_algorithm
from ..ranking.rerank import Reranker, RerankOptions
from ..retrievers.filters import FilterPredicate, SearchFilters, translate
from ..retrievers.lexical import LexicalRetriever
from ..retrievers.query import normalize_query
from ..retrievers.vector import VectorRetriever

logger = structlog.get_logger("hybrid_search.search_manager")

STRATEGIES = ("lexical", "vector", "hybrid")


class HybridSearchManager:
    """Coordinates retrieval, fusion, and reranking.

    Responsibilities
    - Validate request options and translate filters once per request
    - Query both sources concurrently and wait for both
    - Fuse, optionally rerank, and assign the final ``rank``

    Every collaborator is passed in; nothing is looked up from module state.
    """

    def __init__(
        self,
        lexical_retriever: LexicalRetriever,
        vector_retriever: VectorRetriever,
        reranker: Optional[Reranker] = None,
        config: Optional[SearchConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        closers: Optional[List[Any]] = None,
    ):
        """Construct a search manager.

        Parameters
        - lexical_retriever / vector_retriever: the two ranking sources
        - reranker: required only when callers ask for ``rerank``
        - config: fusion and rerank defaults; ``SearchConfig()`` if omitted
        - metrics: optional ``MetricsCollector``
        - closers: resources with an async ``close()`` released by ``close``
        """
        self.lexical_retriever = lexical_retriever
        self.vector_retriever = vector_retriever
        self.reranker = reranker
        self.config = config or SearchConfig()
        self.metrics = metrics
        self._closers = closers or []

    async def search(
        self,
        query: str,
        k: Optional[int] = None,
        filters: Any = None,
        strategy: str = "hybrid",
    ) -> List[Candidate]:
        """Search with a single source or with both.

        ``strategy`` is ``lexical``, ``vector``, or ``hybrid``.
        """
        if strategy == "hybrid":
            return await self.hybrid_search(query, k, filters)
        if strategy not in STRATEGIES:
            raise ValidationError(f"Unknown strategy: {strategy}")

        with request_context(strategy):
            return await self._single_source_search(strategy, query, k, filters)

    async def hybrid_search(
        self,
        query: str,
        k: Optional[int] = None,
        filters: Any = None,
    ) -> List[Candidate]:
        """Perform hybrid search.

        Returns at most ``k`` candidates ordered by fused score, or by rerank
        score when ``filters.rerank`` is set. An empty query returns ``[]``
        without calling any collaborator.
        """
        with request_context("hybrid"):
            return await self._hybrid_search(query, k, filters)

    async def _single_source_search(
        self,
        strategy: str,
        query: str,
        k: Optional[int],
        filters: Any,
    ) -> List[Candidate]:
        try:
            query = normalize_query(query)
        except EmptyQueryError:
            return []

        k = self._validate_k(k)
        options = SearchFilters.from_request(filters)
        predicate = translate(options, self.config.hs_required_field)
        retriever = self.lexical_retriever if strategy == LEXICAL else self.vector_retriever

        start_time = time.time()
        try:
            candidates = await self._run_source(strategy, retriever.retrieve(query, k, predicate))
        except HybridSearchError as e:
            self._on_error(e, "retrieval")
            raise

        results = self._finalize(candidates)
        self._record(strategy, start_time, results)
        return results

    async def _hybrid_search(
        self,
        query: str,
        k: Optional[int],
        filters: Any,
    ) -> List[Candidate]:
        try:
            query = normalize_query(query)
        except EmptyQueryError:
            logger.debug("Empty query, skipping search")
            return []

        k = self._validate_k(k)
        options = SearchFilters.from_request(filters)
        predicate = translate(options, self.config.hs_required_field)

        if options.rerank and self.reranker is None:
            raise ValidationError("Rerank requested but no reranker is configured")

        start_time = time.time()

        # FanOut
        stage_start = time.time()
        try:
            lexical_results, vector_results = await self._fan_out(query, k, predicate)
        except HybridSearchError as e:
            self._on_error(e, "retrieval")
            raise
        self._record_stage("retrieval", stage_start)

        # Fuse
        stage_start = time.time()
        try:
            fusion = create_fusion_algorithm(
                options.fusion,
                k0=self.config.hs_rrf_k0,
                lexical_weight=self.config.hs_lexical_weight,
                vector_weight=self.config.hs_vector_weight,
            )
            fused = fusion.fuse_results(lexical_results, vector_results, top_k=k)
        except HybridSearchError as e:
            self._on_error(e, "fusion")
            raise
        self._record_stage("fusion", stage_start)

        # Rerank?
        final = fused
        if options.rerank and fused:
            stage_start = time.time()
            rerank_options = RerankOptions(
                model=options.model,
                pre_rerank_k=min(options.pre_rerank_k or self.config.hs_pre_rerank_k, len(fused)),
                top_k=k,
                max_doc_chars=options.max_doc_chars or self.config.hs_max_doc_chars,
            )
            try:
                result = await self.reranker.rerank(query, fused, rerank_options)
            except HybridSearchError as e:
                self._on_error(e, "rerank")
                raise
            final = result.reranked
            self._record_stage("rerank", stage_start)

        results = self._finalize(final)

        logger.info(
            "Search completed",
            fusion=options.fusion,
            rerank=options.rerank,
            lexical_count=len(lexical_results),
            vector_count=len(vector_results),
            results_count=len(results),
            latency_ms=(time.time() - start_time) * 1000
        )

        self._record("hybrid", start_time, results)
        return results

    async def _fan_out(
        self,
        query: str,
        k: int,
        predicate: FilterPredicate,
    ) -> Tuple[List[Candidate], List[Candidate]]:
        """Run both retrievals concurrently and wait for both to settle.

        Fail-fast by default: the first failure in source order is raised.
        With ``hs_allow_partial_results`` a single failed source is replaced
        by an empty list.
        """
        outcomes = await asyncio.gather(
            self._run_source(LEXICAL, self.lexical_retriever.retrieve(query, k, predicate)),
            self._run_source(VECTOR, self.vector_retriever.retrieve(query, k, predicate)),
            return_exceptions=True,
        )

        failures = [
            (source, outcome)
            for source, outcome in zip((LEXICAL, VECTOR), outcomes)
            if isinstance(outcome, BaseException)
        ]
        if failures:
            if not self.config.hs_allow_partial_results or len(failures) == len(outcomes):
                raise failures[0][1]
            for source, error in failures:
                if isinstance(error, UpstreamError) and self.metrics:
                    self.metrics.record_upstream_error(error.provider)
                logger.warning(
                    "Retrieval source failed, continuing with partial results",
                    source=source,
                    error=str(error)
                )

        lexical_results, vector_results = (
            [] if isinstance(outcome, BaseException) else outcome
            for outcome in outcomes
        )
        return lexical_results, vector_results

    async def _run_source(self, source: str, call: Awaitable[List[Candidate]]) -> List[Candidate]:
        """Await one retrieval, applying the configured timeout."""
        timeout = self.config.hs_retrieval_timeout
        if timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error("Retrieval timed out", source=source, timeout_seconds=timeout)
            raise UpstreamError(source, f"timed out after {timeout}s", stage="retrieval") from e

    def _validate_k(self, k: Optional[int]) -> int:
        if k is None:
            return self.config.hs_default_top_k
        if isinstance(k, bool) or not isinstance(k, int):
            raise ValidationError(f"k must be an integer, got {k!r}")
        if not 1 <= k <= self.config.hs_max_top_k:
            raise ValidationError(f"k must be between 1 and {self.config.hs_max_top_k}, got {k}")
        return k

    @staticmethod
    def _finalize(candidates: List[Candidate]) -> List[Candidate]:
        """Copy candidates with ``rank`` set to their final position."""
        return [c.copy(rank=idx) for idx, c in enumerate(candidates, start=1)]

    def _on_error(self, error: HybridSearchError, stage: str) -> None:
        if error.stage is None:
            error.stage = stage
        if isinstance(error, UpstreamError) and self.metrics:
            self.metrics.record_upstream_error(error.provider)
        logger.error("Search failed", stage=error.stage, error=str(error))

    def _record_stage(self, stage: str, start_time: float) -> None:
        if self.metrics:
            self.metrics.record_stage(stage, time.time() - start_time)

    def _record(self, strategy: str, start_time: float, results: List[Candidate]) -> None:
        if self.metrics:
            self.metrics.record_search(strategy, time.time() - start_time, len(results))

    async def health_check(self) -> bool:
        """Check if both indexes are reachable."""
        try:
            lexical_ok, vector_ok = await asyncio.gather(
                self.lexical_retriever.index.health_check(),
                self.vector_retriever.index.health_check(),
            )
            return bool(lexical_ok and vector_ok)
        except Exception as e:
            logger.error("Health check failed", error=str(e))
            return False

    async def close(self) -> None:
        """Release provider and index clients."""
        for resource in self._closers:
            # httpx clients expose aclose(), OpenSearch clients close()
            close = getattr(resource, "aclose", None) or resource.close
            await close()
        logger.info("Search manager closed")
