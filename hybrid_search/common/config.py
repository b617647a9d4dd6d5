"""Configuration management for hybrid search.

This module centralizes environment-driven configuration for the search
components (index backend, embedding and rerank providers, fusion defaults).
It builds on ``pydantic_settings.BaseSettings`` so configuration can be
provided via environment variables, ``.env`` files, or defaults.

Highlights
- Strongly-typed settings with sensible defaults
- One place to discover every ``HS_*`` environment variable
- Loaded once by the composition root and passed explicitly

Usage
- ``config = SearchConfig()`` in your entrypoint, then
  ``create_search_manager(config)``
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SearchConfig(BaseSettings):
    """Configuration for the hybrid search engine.

    Field names map case-insensitively onto environment variables, e.g.
    ``hs_rrf_k0`` is read from ``HS_RRF_K0``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    hs_log_level: str = Field(default="INFO")
    hs_log_format: str = Field(default="json")

    # OpenSearch
    hs_opensearch_hosts: str = Field(default="http://localhost:9200")
    hs_opensearch_username: Optional[str] = Field(default=None)
    hs_opensearch_password: Optional[str] = Field(default=None)
    hs_opensearch_verify_certs: bool = Field(default=False)
    hs_lexical_index: str = Field(default="documents")
    hs_vector_index: str = Field(default="documents")
    hs_lexical_fields: str = Field(default="text,title,tags")
    hs_vector_field: str = Field(default="embedding")
    hs_vector_dimension: int = Field(default=1536, gt=0)
    hs_required_field: Optional[str] = Field(default="title")
    hs_meta_keyword_suffix: str = Field(default=".keyword")

    # Embedding provider
    hs_embedding_api_key: Optional[str] = Field(default=None)
    hs_embedding_model: str = Field(default="gemini-embedding-001")
    hs_embedding_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta")

    # Rerank provider
    hs_rerank_api_key: Optional[str] = Field(default=None)
    hs_rerank_model: str = Field(default="rerank-2.5-lite")
    hs_rerank_base_url: str = Field(default="https://api.voyageai.com/v1")

    # Timeouts and failure policy
    hs_http_timeout: float = Field(default=30.0, gt=0)
    hs_retrieval_timeout: Optional[float] = Field(default=None, gt=0)
    hs_allow_partial_results: bool = Field(default=False)

    # Ranking defaults
    hs_default_top_k: int = Field(default=10, ge=1)
    hs_max_top_k: int = Field(default=100, ge=1)
    hs_rrf_k0: float = Field(default=60.0, ge=0)
    hs_lexical_weight: float = Field(default=0.4, ge=0)
    hs_vector_weight: float = Field(default=0.6, ge=0)
    hs_pre_rerank_k: int = Field(default=50, ge=1)
    hs_max_doc_chars: int = Field(default=1500, ge=1)

    @property
    def opensearch_hosts(self) -> List[str]:
        """Hosts as a list, split on commas."""
        return [h.strip() for h in self.hs_opensearch_hosts.split(",") if h.strip()]

    @property
    def lexical_fields(self) -> List[str]:
        """Fields the lexical query matches against."""
        return [f.strip() for f in self.hs_lexical_fields.split(",") if f.strip()]
