"""Common utilities shared across the search components.

Includes:
- ``config``: Pydantic-based configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers.
- ``errors``: the error taxonomy surfaced to callers.

Import pattern:
- from hybrid_search.common.config import SearchConfig
- from hybrid_search.common.logging import configure_logging
"""
