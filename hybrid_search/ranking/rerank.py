"""Cross-encoder rerank adapter.

Scores a prefix of the fused candidates with an external ``RerankProvider``
and re-sorts them by relevance. The provider is external and not fully
trusted: indices it returns that do not point into the submitted batch are
dropped.
"""

import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

import structlog

from ..backends.base import RerankProvider
from ..models import Candidate, RerankResult

logger = structlog.get_logger("hybrid_search.rerank")

DEFAULT_RERANK_MODEL = "rerank-2.5-lite"


@dataclass
class RerankOptions:
    """Knobs for one rerank call."""
    model: Optional[str] = None
    pre_rerank_k: int = 50
    top_k: int = 10
    max_doc_chars: int = 1500


def trim_text(text: Optional[str], max_chars: int) -> str:
    """Cut ``text`` to at most ``max_chars`` characters; ``None`` becomes ''."""
    if not text:
        return ""
    text = str(text)
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


class Reranker:
    """Reranks fused candidates through a ``RerankProvider``."""

    def __init__(self, provider: RerankProvider, default_model: str = DEFAULT_RERANK_MODEL):
        self.provider = provider
        self.default_model = default_model

    async def rerank(
        self,
        query: str,
        candidates: Sequence[Candidate],
        options: Optional[RerankOptions] = None,
    ) -> RerankResult:
        """Rerank the first ``pre_rerank_k`` candidates.

        Returned candidates are copies; ``fused_score``/``fused_rank`` are left
        as they were. If every trimmed text is empty the provider is not
        called and the first ``min(top_k, pre_rerank_k)`` inputs come back
        unscored.
        """
        options = options or RerankOptions()
        model = options.model or self.default_model
        top_k = options.top_k

        sliced = list(candidates[:options.pre_rerank_k])
        docs = [trim_text(c.text, options.max_doc_chars) for c in sliced]

        if not any(docs):
            logger.warning(
                "Rerank skipped, no candidate text",
                candidates_count=len(candidates)
            )
            return RerankResult(
                reranked=[c.copy() for c in sliced[:top_k]],
                latency_ms=0.0,
                model=model,
            )

        start_time = time.time()
        results = await self.provider.score(
            query,
            docs,
            model=model,
            top_k=min(top_k, len(docs)),
        )
        latency_ms = (time.time() - start_time) * 1000

        scored: List[Candidate] = []
        seen = set()
        dropped = 0
        for item in results:
            if not 0 <= item.index < len(sliced) or item.index in seen:
                dropped += 1
                continue
            seen.add(item.index)
            scored.append(sliced[item.index].copy(rerank_score=float(item.relevance_score)))

        scored.sort(key=lambda c: c.rerank_score, reverse=True)
        reranked = scored[:top_k]
        for idx, candidate in enumerate(reranked, start=1):
            candidate.rerank_rank = idx

        logger.info(
            "Rerank completed",
            model=model,
            submitted=len(docs),
            returned=len(results),
            dropped=dropped,
            reranked_count=len(reranked),
            latency_ms=latency_ms
        )

        return RerankResult(reranked=reranked, latency_ms=latency_ms, model=model)
