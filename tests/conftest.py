"""Shared fixtures and fake collaborators."""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
import pytest

from hybrid_search.backends.base import (
    EmbeddingProvider,
    LexicalIndex,
    RerankProvider,
    RerankScore,
    VectorIndex,
)
from hybrid_search.common.config import SearchConfig
from hybrid_search.hybrid.search_manager import HybridSearchManager
from hybrid_search.models import Candidate, LEXICAL, VECTOR
from hybrid_search.ranking.rerank import Reranker
from hybrid_search.retrievers.lexical import LexicalRetriever
from hybrid_search.retrievers.vector import VectorRetriever


def lex_row(doc_id: Any, score: Optional[float] = 1.0, text: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Lexical backend row."""
    return {"id": doc_id, "text": text if text is not None else f"doc {doc_id}", "lexical_score": score, **extra}


def vec_row(doc_id: Any, score: Optional[float] = 0.9, text: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Vector backend row."""
    return {"id": doc_id, "text": text if text is not None else f"doc {doc_id}", "similarity_score": score, **extra}


def lexical_hits(*ids: Any) -> List[Candidate]:
    """Lexical candidates ranked 1..n, scores descending."""
    return [
        Candidate(id=str(i), text=f"doc {i}", source_ranks={LEXICAL: r},
                  source_scores={LEXICAL: float(10 - r)})
        for r, i in enumerate(ids, start=1)
    ]


def vector_hits(*ids: Any) -> List[Candidate]:
    """Vector candidates ranked 1..n, scores descending."""
    return [
        Candidate(id=str(i), text=f"doc {i}", source_ranks={VECTOR: r},
                  source_scores={VECTOR: 1.0 - r / 100})
        for r, i in enumerate(ids, start=1)
    ]


class FakeLexicalIndex(LexicalIndex):
    """Records calls and returns canned rows."""

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None,
                 before: Optional[Callable] = None):
        self.rows = rows or []
        self.error = error
        self.before = before
        self.calls: List[Dict[str, Any]] = []

    async def search(self, query, k, predicate):
        self.calls.append({"query": query, "k": k, "predicate": predicate})
        if self.before:
            await self.before()
        if self.error:
            raise self.error
        return list(self.rows)


class FakeVectorIndex(VectorIndex):
    """Records calls and returns canned rows."""

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None,
                 before: Optional[Callable] = None):
        self.rows = rows or []
        self.error = error
        self.before = before
        self.calls: List[Dict[str, Any]] = []

    async def search(self, vector, k, predicate, num_candidates=None):
        self.calls.append({"vector": vector, "k": k, "predicate": predicate,
                           "num_candidates": num_candidates})
        if self.before:
            await self.before()
        if self.error:
            raise self.error
        return list(self.rows)


class FakeEmbedder(EmbeddingProvider):
    """Returns a constant vector, or raises ``error``."""

    def __init__(self, error: Optional[Exception] = None, dimension: int = 1536):
        self.error = error
        self.dimension = dimension
        self.calls: List[str] = []

    async def embed(self, text):
        self.calls.append(text)
        if self.error:
            raise self.error
        return np.full(self.dimension, 0.5)


class FakeRerankProvider(RerankProvider):
    """Scores documents by length unless canned ``results`` are given."""

    def __init__(self, results: Optional[List[RerankScore]] = None, error: Optional[Exception] = None):
        self.results = results
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def score(self, query, documents: Sequence[str], model=None, top_k=None):
        self.calls.append({"query": query, "documents": list(documents), "model": model, "top_k": top_k})
        if self.error:
            raise self.error
        if self.results is not None:
            return list(self.results)
        return [RerankScore(index=i, relevance_score=float(len(d))) for i, d in enumerate(documents)]


@pytest.fixture
def config():
    """Explicit defaults, independent of the environment."""
    return SearchConfig(
        hs_required_field="title",
        hs_retrieval_timeout=None,
        hs_allow_partial_results=False,
        hs_default_top_k=10,
        hs_max_top_k=100,
        hs_rrf_k0=60.0,
        hs_lexical_weight=0.4,
        hs_vector_weight=0.6,
        hs_pre_rerank_k=50,
        hs_max_doc_chars=1500,
    )


@pytest.fixture
def build_manager(config):
    """Factory for a manager wired to fakes."""

    def _build(lexical_index=None, vector_index=None, embedder=None, rerank_provider=None,
               metrics=None, **overrides):
        cfg = config.model_copy(update=overrides) if overrides else config
        lexical_index = lexical_index or FakeLexicalIndex()
        vector_index = vector_index or FakeVectorIndex()
        embedder = embedder or FakeEmbedder()
        reranker = Reranker(rerank_provider) if rerank_provider else None
        return HybridSearchManager(
            lexical_retriever=LexicalRetriever(lexical_index),
            vector_retriever=VectorRetriever(vector_index, embedder),
            reranker=reranker,
            config=cfg,
            metrics=metrics,
        )

    return _build


def barrier_pair():
    """Two hooks that only return once both have been entered.

    Sequential execution of the two callers would never get past the first
    hook, so passing through proves the calls overlapped.
    """
    first, second = asyncio.Event(), asyncio.Event()

    async def enter_first():
        first.set()
        await second.wait()

    async def enter_second():
        second.set()
        await first.wait()

    return enter_first, enter_second
