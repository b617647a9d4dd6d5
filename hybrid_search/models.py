"""Data model for retrieval candidates.

A ``Candidate`` is a document surfaced by one or more retrieval sources. It
is built per request, never persisted, and carries the per-source ranks and
scores next to the fused and rerank scores so every stage stays observable.

Absent per-source entries mean "not returned by that source", which is not
the same as a zero score.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

LEXICAL = "lexical"
VECTOR = "vector"


@dataclass
class Candidate:
    """A document surfaced by retrieval."""
    id: str
    text: Optional[str] = None
    title: Optional[str] = None
    tags: Optional[List[str]] = None
    created_at: Optional[Any] = None
    meta: Optional[Dict[str, Any]] = None
    source_ranks: Dict[str, int] = field(default_factory=dict)
    source_scores: Dict[str, float] = field(default_factory=dict)
    fused_score: Optional[float] = None
    fused_rank: Optional[int] = None
    rerank_score: Optional[float] = None
    rerank_rank: Optional[int] = None
    rank: Optional[int] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any], source: str, rank: int, score_key: str) -> "Candidate":
        """Build a single-source candidate from a backend row.

        Missing source scores default to 0.
        """
        score = row.get(score_key)
        return cls(
            id=str(row["id"]),
            text=row.get("text"),
            title=row.get("title"),
            tags=row.get("tags"),
            created_at=row.get("created_at"),
            meta=row.get("meta"),
            source_ranks={source: rank},
            source_scores={source: float(score) if score is not None else 0.0},
        )

    def copy(self, **changes: Any) -> "Candidate":
        """Return a copy with ``changes`` applied; mappings are not shared."""
        changes.setdefault("source_ranks", dict(self.source_ranks))
        changes.setdefault("source_scores", dict(self.source_scores))
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Response shape; rerank fields only appear once reranked."""
        data: Dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "title": self.title,
            "tags": self.tags,
            "rank": self.rank,
            "fused_score": self.fused_score,
            "source_ranks": dict(self.source_ranks),
            "source_scores": dict(self.source_scores),
            "created_at": self.created_at,
            "meta": self.meta,
        }
        if self.rerank_score is not None:
            data["rerank_score"] = self.rerank_score
            data["rerank_rank"] = self.rerank_rank
        return data


@dataclass
class RerankResult:
    """Output of the rerank adapter."""
    reranked: List[Candidate]
    latency_ms: float
    model: str
