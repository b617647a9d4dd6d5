"""Metrics collection for hybrid search.

Provides a thin convenience wrapper around ``prometheus_client`` so the
orchestrator can consistently record request, stage, and upstream metrics.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- Each collector owns its registry; pass one in for testing
- The collector is injected, never looked up from module state
"""

from typing import Optional
from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest
import structlog

logger = structlog.get_logger("hybrid_search.metrics")


class MetricsCollector:
    """Centralized metrics collection for hybrid search.

    Parameters
    - service_name: Logical name used for scoping
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.search_requests = Counter(
            'hybrid_search_requests_total',
            'Total search requests',
            ['strategy'],
            registry=self.registry
        )

        self.search_duration = Histogram(
            'hybrid_search_duration_seconds',
            'End-to-end search duration',
            ['strategy'],
            registry=self.registry
        )

        self.stage_duration = Histogram(
            'hybrid_search_stage_duration_seconds',
            'Duration of a single pipeline stage',
            ['stage'],
            registry=self.registry
        )

        self.upstream_errors = Counter(
            'hybrid_search_upstream_errors_total',
            'Failures raised by external providers',
            ['provider'],
            registry=self.registry
        )

        self.result_count = Histogram(
            'hybrid_search_results',
            'Number of results returned per search',
            ['strategy'],
            buckets=(0, 1, 5, 10, 20, 50, 100),
            registry=self.registry
        )

    def record_search(self, strategy: str, duration: float, results: int) -> None:
        """Record a completed search.

        duration is expected in seconds to match Prometheus histogram units.
        """
        self.search_requests.labels(strategy=strategy).inc()
        self.search_duration.labels(strategy=strategy).observe(duration)
        self.result_count.labels(strategy=strategy).observe(results)

    def record_stage(self, stage: str, duration: float) -> None:
        """Record the duration of one pipeline stage."""
        self.stage_duration.labels(stage=stage).observe(duration)

    def record_upstream_error(self, provider: str) -> None:
        """Record a provider failure."""
        self.upstream_errors.labels(provider=provider).inc()

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')
