"""Hybrid lexical + vector retrieval with rank fusion and reranking.

Subpackages:
- ``hybrid_search.common``: configuration, logging, metrics, and errors.
- ``hybrid_search.backends``: collaborator interfaces and concrete providers.
- ``hybrid_search.retrievers``: filter translation and per-source adapters.
- ``hybrid_search.ranking``: fusion strategies and the rerank adapter.
- ``hybrid_search.hybrid``: the orchestrator tying the pieces together.

Notes:
- Collaborators are constructed explicitly and injected; see
  ``backends.factory.create_search_manager`` for the default wiring.
"""

from .models import Candidate, RerankResult
from .hybrid.search_manager import HybridSearchManager

__all__ = ["Candidate", "RerankResult", "HybridSearchManager"]
