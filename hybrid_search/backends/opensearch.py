"""OpenSearch lexical and kNN index implementations."""

from typing import Any, Dict, List, Optional

import numpy as np
import structlog
from opensearchpy import AsyncOpenSearch, exceptions

from ..common.errors import ResponseShapeError, UpstreamError
from ..retrievers.filters import FilterPredicate
from .base import LexicalIndex, VectorIndex

logger = structlog.get_logger("hybrid_search.backends.opensearch")

SOURCE_FIELDS = ["text", "title", "tags", "created_at", "meta"]

# dynamic mapping indexes strings as analyzed text with an exact-match keyword sub-field
KEYWORD_SUFFIX = ".keyword"


def create_client(
    hosts: List[str],
    username: Optional[str] = None,
    password: Optional[str] = None,
    verify_certs: bool = False,
) -> AsyncOpenSearch:
    """Create an ``AsyncOpenSearch`` client shared by both indexes."""
    return AsyncOpenSearch(
        hosts=hosts,
        http_auth=(username, password) if username and password else None,
        verify_certs=verify_certs,
        use_ssl=hosts[0].startswith("https") if hosts else False,
    )


def build_filter_clauses(
    predicate: FilterPredicate,
    keyword_suffix: str = KEYWORD_SUFFIX,
) -> List[Dict[str, Any]]:
    """Translate a ``FilterPredicate`` into OpenSearch ``bool.filter`` clauses.

    String ``meta`` values are matched against ``<field><keyword_suffix>``;
    pass ``""`` when the index maps ``meta.*`` as ``keyword`` directly.
    """
    clauses: List[Dict[str, Any]] = []
    if predicate.is_empty():
        return clauses

    for field_name in predicate.exists:
        clauses.append({"exists": {"field": field_name}})

    if predicate.created_after or predicate.created_before:
        bounds: Dict[str, str] = {}
        if predicate.created_after:
            bounds["gte"] = predicate.created_after.isoformat()
        if predicate.created_before:
            bounds["lte"] = predicate.created_before.isoformat()
        clauses.append({"range": {"created_at": bounds}})

    for field_name, value in predicate.meta_equals.items():
        if isinstance(value, str):
            field_name = f"{field_name}{keyword_suffix}"
        clauses.append({"term": {field_name: value}})

    if predicate.ids:
        clauses.append({"ids": {"values": list(predicate.ids)}})

    return clauses


def hits_to_rows(response: Dict[str, Any], score_key: str) -> List[Dict[str, Any]]:
    """Flatten an OpenSearch search response into backend rows."""
    try:
        hits = response["hits"]["hits"]
    except (KeyError, TypeError) as e:
        raise ResponseShapeError("opensearch", "response has no hits.hits", stage="retrieval") from e

    rows = []
    for hit in hits:
        source = hit.get("_source") or {}
        rows.append({
            "id": hit.get("_id"),
            "text": source.get("text"),
            "title": source.get("title"),
            "tags": source.get("tags"),
            score_key: hit.get("_score"),
            "created_at": source.get("created_at"),
            "meta": source.get("meta"),
        })
    return rows


class _OpenSearchIndex:
    """Shared plumbing for both index kinds."""

    def __init__(self, client: AsyncOpenSearch, index_name: str, keyword_suffix: str = KEYWORD_SUFFIX):
        self.client = client
        self.index_name = index_name
        self.keyword_suffix = keyword_suffix

    async def _search(self, body: Dict[str, Any], kind: str) -> Dict[str, Any]:
        try:
            return await self.client.search(index=self.index_name, body=body)
        except exceptions.OpenSearchException as e:
            status = getattr(e, "status_code", None)
            logger.error(
                "OpenSearch query failed",
                kind=kind,
                index_name=self.index_name,
                error=str(e)
            )
            raise UpstreamError(
                "opensearch",
                f"{kind} query failed: {e}",
                status_code=status if isinstance(status, int) else None,
                stage="retrieval",
            ) from e

    async def health_check(self) -> bool:
        """Ping the cluster."""
        try:
            return bool(await self.client.ping())
        except Exception as e:
            logger.error("OpenSearch ping failed", error=str(e))
            return False


class OpenSearchLexicalIndex(_OpenSearchIndex, LexicalIndex):
    """BM25 ``multi_match`` search over text fields."""

    def __init__(
        self,
        client: AsyncOpenSearch,
        index_name: str = "documents",
        fields: Optional[List[str]] = None,
        keyword_suffix: str = KEYWORD_SUFFIX,
    ):
        super().__init__(client, index_name, keyword_suffix)
        self.fields = fields or ["text", "title", "tags"]

    async def search(
        self,
        query: str,
        k: int,
        predicate: FilterPredicate,
    ) -> List[Dict[str, Any]]:
        """Run a lexical query."""
        body = {
            "size": k,
            "_source": SOURCE_FIELDS,
            "query": {
                "bool": {
                    "must": [{"multi_match": {"query": query, "fields": self.fields}}],
                    "filter": build_filter_clauses(predicate, self.keyword_suffix),
                }
            },
        }
        response = await self._search(body, "lexical")
        return hits_to_rows(response, "lexical_score")


class OpenSearchVectorIndex(_OpenSearchIndex, VectorIndex):
    """Approximate kNN search over a ``knn_vector`` field."""

    def __init__(
        self,
        client: AsyncOpenSearch,
        index_name: str = "documents",
        vector_field: str = "embedding",
        vector_dimension: int = 1536,
        keyword_suffix: str = KEYWORD_SUFFIX,
    ):
        super().__init__(client, index_name, keyword_suffix)
        self.vector_field = vector_field
        self.vector_dimension = vector_dimension

    async def search(
        self,
        vector: np.ndarray,
        k: int,
        predicate: FilterPredicate,
        num_candidates: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Run a kNN query, filtering inside the ANN search."""
        vector = np.asarray(vector, dtype=float)
        if vector.shape != (self.vector_dimension,):
            raise ResponseShapeError(
                "embedding",
                f"expected vector of dimension {self.vector_dimension}, got shape {vector.shape}",
                stage="retrieval",
            )

        knn: Dict[str, Any] = {
            "vector": vector.tolist(),
            "k": num_candidates or k,
        }
        clauses = build_filter_clauses(predicate, self.keyword_suffix)
        if clauses:
            knn["filter"] = {"bool": {"filter": clauses}}

        body = {
            "size": k,
            "_source": SOURCE_FIELDS,
            "query": {"knn": {self.vector_field: knn}},
        }
        response = await self._search(body, "vector")
        return hits_to_rows(response, "similarity_score")
