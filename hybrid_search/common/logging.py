"""Structured logging for hybrid search.

``structlog`` on top of the stdlib ``logging`` module: JSON lines for
deployed environments, a colored console format for ad-hoc queries. The
service name is bound once at startup; each search binds a ``request_id``
and its ``strategy`` so the retrieval, fusion, and rerank log lines of one
request can be joined back together.
"""

import logging
import sys
import uuid
from typing import Optional
import structlog
from structlog.stdlib import LoggerFactory, add_logger_name

LOG_FORMATS = ("json", "console")


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    log_format: str = "json",
) -> None:
    """Configure structured logging.

    Parameters
    - service_name: bound to every log line as ``service``
    - log_level: ``DEBUG``, ``INFO``, ``WARNING``, ``ERROR`` (case-insensitive);
      unknown names fall back to ``INFO``
    - log_format: ``json`` or ``console``
    """
    if log_format not in LOG_FORMATS:
        raise ValueError(f"Unknown log format: {log_format}")

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_logger_name,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)


def request_context(strategy: str, request_id: Optional[str] = None):
    """Bind ``request_id`` and ``strategy`` to log lines emitted in the block.

    Use as ``with request_context("hybrid"): ...``; the previous values are
    restored on exit.
    """
    return structlog.contextvars.bound_contextvars(
        request_id=request_id or uuid.uuid4().hex[:12],
        strategy=strategy,
    )
