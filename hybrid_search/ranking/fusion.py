"""Result fusion algorithms for hybrid search.

Both strategies share one merge: a mapping keyed by document id, filled by
walking each ranked list in order (lexical first, then vector). Because the
mapping preserves insertion order and Python's sort is stable, equal fused
scores keep first-seen order, so the output depends only on the lists'
internal rank order and never on which retrieval finished first.
"""

from typing import Dict, List, Optional, Sequence, Tuple
import structlog

from ..common.errors import ResponseShapeError
from ..models import Candidate, LEXICAL, VECTOR

logger = structlog.get_logger("hybrid_search.fusion")

RankedList = Tuple[str, Sequence[Candidate]]


def merge_candidates(ranked_lists: Sequence[RankedList]) -> Dict[str, Candidate]:
    """Merge ranked lists by document id.

    Per-source rank and score are copied from each input. Text and the
    descriptive fields are set from the first source that has them and are
    never overwritten afterwards.
    """
    merged: Dict[str, Candidate] = {}

    for source, hits in ranked_lists:
        for position, hit in enumerate(hits, start=1):
            if hit.id is None:
                raise ResponseShapeError(source, "candidate without id", stage="fusion")

            key = str(hit.id)
            row = merged.get(key)
            if row is None:
                row = Candidate(id=key)
                merged[key] = row

            if not row.text and hit.text:
                row.text = hit.text
            if row.title is None:
                row.title = hit.title
            if row.tags is None:
                row.tags = hit.tags
            if row.created_at is None:
                row.created_at = hit.created_at
            if row.meta is None:
                row.meta = hit.meta

            # a repeated id within one list keeps its first rank
            row.source_ranks.setdefault(source, hit.source_ranks.get(source, position))
            if source in hit.source_scores:
                row.source_scores.setdefault(source, hit.source_scores[source])

    return merged


def _rank(candidates: List[Candidate], top_k: int) -> List[Candidate]:
    """Sort descending by fused score (stable), truncate, assign dense ranks."""
    ordered = sorted(candidates, key=lambda c: c.fused_score or 0.0, reverse=True)[:top_k]
    for idx, candidate in enumerate(ordered, start=1):
        candidate.fused_rank = idx
    return ordered


class RankFusionAlgorithm:
    """Base class for rank fusion algorithms."""

    name = "base"

    def fuse(self, ranked_lists: Sequence[RankedList], top_k: int = 10) -> List[Candidate]:
        """Fuse ranked lists into at most ``top_k`` candidates."""
        raise NotImplementedError

    def fuse_results(
        self,
        lexical_results: Sequence[Candidate],
        vector_results: Sequence[Candidate],
        top_k: int = 10,
    ) -> List[Candidate]:
        """Fuse the lexical and vector lists, lexical first."""
        return self.fuse([(LEXICAL, lexical_results), (VECTOR, vector_results)], top_k=top_k)


class ReciprocalRankFusion(RankFusionAlgorithm):
    """Reciprocal Rank Fusion (RRF) algorithm.

    Each appearance at rank ``r`` adds ``1 / (k0 + r)``; contributions from
    different lists add up.
    """

    name = "rrf"

    def __init__(self, k0: float = 60.0):
        self.k0 = k0

    def fuse(self, ranked_lists: Sequence[RankedList], top_k: int = 10) -> List[Candidate]:
        """Fuse results using RRF algorithm."""
        merged = merge_candidates(ranked_lists)

        for candidate in merged.values():
            candidate.fused_score = sum(
                1.0 / (self.k0 + rank) for rank in candidate.source_ranks.values()
            )

        fused = _rank(list(merged.values()), top_k)

        logger.info(
            "RRF fusion completed",
            input_counts={source: len(hits) for source, hits in ranked_lists},
            merged_count=len(merged),
            fused_count=len(fused),
            k0=self.k0
        )
        return fused


def min_max_normalize(scores: Dict[str, float]) -> Dict[str, float]:
    """Scale scores to [0, 1]; a list of equal scores maps to 1.0."""
    if not scores:
        return {}
    low = min(scores.values())
    high = max(scores.values())
    if high > low:
        return {key: (value - low) / (high - low) for key, value in scores.items()}
    return {key: 1.0 for key in scores}


class WeightedScoreFusion(RankFusionAlgorithm):
    """Weighted score fusion algorithm.

    Raw lexical and similarity scores live on different scales, so each list
    is min-max normalized on its own before weighting. A side that did not
    return the document contributes 0.
    """

    name = "weighted"

    def __init__(self, lexical_weight: float = 0.4, vector_weight: float = 0.6):
        self.weights = {LEXICAL: lexical_weight, VECTOR: vector_weight}

    def fuse(self, ranked_lists: Sequence[RankedList], top_k: int = 10) -> List[Candidate]:
        """Fuse results using weighted normalized scores."""
        merged = merge_candidates(ranked_lists)

        normalized: Dict[str, Dict[str, float]] = {}
        for source, _ in ranked_lists:
            raw = {
                key: c.source_scores[source]
                for key, c in merged.items()
                if source in c.source_scores
            }
            normalized[source] = min_max_normalize(raw)

        for key, candidate in merged.items():
            candidate.fused_score = sum(
                self.weights.get(source, 0.0) * norm.get(key, 0.0)
                for source, norm in normalized.items()
            )

        fused = _rank(list(merged.values()), top_k)

        logger.info(
            "Weighted score fusion completed",
            input_counts={source: len(hits) for source, hits in ranked_lists},
            merged_count=len(merged),
            fused_count=len(fused),
            weights=self.weights
        )
        return fused


def create_fusion_algorithm(
    algorithm: str = "rrf",
    k0: Optional[float] = None,
    lexical_weight: Optional[float] = None,
    vector_weight: Optional[float] = None,
) -> RankFusionAlgorithm:
    """Create a fusion algorithm instance."""
    if algorithm == "rrf":
        return ReciprocalRankFusion(k0=60.0 if k0 is None else k0)

    elif algorithm == "weighted":
        return WeightedScoreFusion(
            lexical_weight=0.4 if lexical_weight is None else lexical_weight,
            vector_weight=0.6 if vector_weight is None else vector_weight,
        )

    else:
        raise ValueError(f"Unknown fusion algorithm: {algorithm}")


def fuse_results(
    lexical_results: Sequence[Candidate],
    vector_results: Sequence[Candidate],
    strategy: str = "rrf",
    top_k: int = 10,
    **params: Optional[float],
) -> List[Candidate]:
    """Fuse lexical and vector results with the named strategy.

    ``params`` are forwarded to ``create_fusion_algorithm`` (``k0``,
    ``lexical_weight``, ``vector_weight``).
    """
    algorithm = create_fusion_algorithm(strategy, **params)
    return algorithm.fuse_results(lexical_results, vector_results, top_k=top_k)
