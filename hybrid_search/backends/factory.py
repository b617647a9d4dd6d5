"""Composition root for hybrid search.

Builds every collaborator from a ``SearchConfig`` and hands them to a
``HybridSearchManager``. Clients are created here, once, and owned by the
returned manager (``await manager.close()`` releases them); no module keeps
a cached client of its own.
"""

from typing import Optional

import httpx
import structlog

from ..common.config import SearchConfig
from ..common.metrics import MetricsCollector
from ..hybrid.search_manager import HybridSearchManager
from ..ranking.rerank import Reranker
from ..retrievers.lexical import LexicalRetriever
from ..retrievers.vector import VectorRetriever
from .embedding import GeminiEmbeddingProvider
from .opensearch import OpenSearchLexicalIndex, OpenSearchVectorIndex, create_client
from .rerank import VoyageRerankProvider

logger = structlog.get_logger("hybrid_search.backends.factory")


def create_search_manager(
    config: Optional[SearchConfig] = None,
    metrics: Optional[MetricsCollector] = None,
) -> HybridSearchManager:
    """Create a fully wired ``HybridSearchManager``.

    Parameters
    - config: settings; read from the environment when omitted
    - metrics: optional collector passed through to the manager

    The reranker is only wired when ``HS_RERANK_API_KEY`` is set.
    """
    config = config or SearchConfig()

    hosts = config.opensearch_hosts
    if not hosts:
        raise ValueError("HS_OPENSEARCH_HOSTS must name at least one host")

    opensearch_client = create_client(
        hosts,
        username=config.hs_opensearch_username,
        password=config.hs_opensearch_password,
        verify_certs=config.hs_opensearch_verify_certs,
    )
    http_client = httpx.AsyncClient(timeout=config.hs_http_timeout)

    lexical_index = OpenSearchLexicalIndex(
        opensearch_client,
        index_name=config.hs_lexical_index,
        fields=config.lexical_fields,
        keyword_suffix=config.hs_meta_keyword_suffix,
    )
    vector_index = OpenSearchVectorIndex(
        opensearch_client,
        index_name=config.hs_vector_index,
        vector_field=config.hs_vector_field,
        vector_dimension=config.hs_vector_dimension,
        keyword_suffix=config.hs_meta_keyword_suffix,
    )
    embedder = GeminiEmbeddingProvider(
        http_client,
        api_key=config.hs_embedding_api_key,
        model=config.hs_embedding_model,
        base_url=config.hs_embedding_base_url,
        dimension=config.hs_vector_dimension,
    )

    reranker = None
    if config.hs_rerank_api_key:
        reranker = Reranker(
            VoyageRerankProvider(
                http_client,
                api_key=config.hs_rerank_api_key,
                model=config.hs_rerank_model,
                base_url=config.hs_rerank_base_url,
            ),
            default_model=config.hs_rerank_model,
        )
    else:
        logger.info("No rerank API key configured, reranking disabled")

    logger.info(
        "Search manager created",
        hosts=hosts,
        lexical_index=config.hs_lexical_index,
        vector_index=config.hs_vector_index,
        rerank_enabled=reranker is not None
    )

    return HybridSearchManager(
        lexical_retriever=LexicalRetriever(lexical_index),
        vector_retriever=VectorRetriever(vector_index, embedder),
        reranker=reranker,
        config=config,
        metrics=metrics,
        closers=[opensearch_client, http_client],
    )
