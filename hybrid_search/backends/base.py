"""Collaborator interfaces consumed by the search core.

Defines the abstract contracts the adapters depend on, independent of the
backing implementation (OpenSearch, Gemini, Voyage, test fakes, etc.).

All methods are asynchronous so the two retrieval sources can be queried
concurrently.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
import numpy as np

from ..retrievers.filters import FilterPredicate


class LexicalIndex(ABC):
    """Term-match index (BM25-style)."""

    @abstractmethod
    async def search(
        self,
        query: str,
        k: int,
        predicate: FilterPredicate,
    ) -> List[Dict[str, Any]]:
        """Run a lexical query.

        Returns
        - Rows ``{id, text, title, tags, lexical_score, created_at, meta}``
          sorted by descending relevance
        """
        pass

    async def health_check(self) -> bool:
        """Check if the index is reachable."""
        return True


class VectorIndex(ABC):
    """Dense-vector nearest-neighbor index."""

    @abstractmethod
    async def search(
        self,
        vector: np.ndarray,
        k: int,
        predicate: FilterPredicate,
        num_candidates: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Run an approximate nearest-neighbor query.

        Parameters
        - num_candidates: ANN candidate pool size; defaults to ``k``

        Returns
        - Rows ``{id, text, title, tags, similarity_score, created_at, meta}``
          sorted by descending similarity
        """
        pass

    async def health_check(self) -> bool:
        """Check if the index is reachable."""
        return True


class EmbeddingProvider(ABC):
    """Turns a query string into a fixed-dimension vector."""

    dimension: int = 1536

    @abstractmethod
    async def embed(self, text: str) -> np.ndarray:
        """Embed ``text``; failures are raised, never swallowed."""
        pass


@dataclass
class RerankScore:
    """One scored entry returned by a rerank provider."""
    index: int
    relevance_score: float


class RerankProvider(ABC):
    """Cross-encoder relevance scorer."""

    @abstractmethod
    async def score(
        self,
        query: str,
        documents: Sequence[str],
        model: Optional[str] = None,
        top_k: Optional[int] = None,
    ) -> List[RerankScore]:
        """Score ``documents`` against ``query``.

        ``index`` in each result refers to the position in ``documents``.
        """
        pass
