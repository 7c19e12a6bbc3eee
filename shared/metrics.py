"""
Prometheus metrics for the metadata retrieval layer.
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, REGISTRY


class MetricsCollector:
    """Holds the counters and histograms emitted by the auth service."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else REGISTRY
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        self._metrics["oidc_metadata_cache_operations_total"] = Counter(
            "oidc_metadata_cache_operations_total",
            "Distributed cache operations performed for identity metadata",
            ["service", "operation", "result"],
            registry=self.registry
        )

        self._metrics["oidc_metadata_fetch_duration_seconds"] = Histogram(
            "oidc_metadata_fetch_duration_seconds",
            "Duration of metadata document fetches from the identity provider",
            ["service", "status"],
            registry=self.registry
        )

        self._metrics["oidc_metadata_refresh_total"] = Counter(
            "oidc_metadata_refresh_total",
            "Configuration refresh attempts",
            ["service", "status"],
            registry=self.registry
        )

    def record_cache_operation(self, operation: str, result: str):
        self._metrics["oidc_metadata_cache_operations_total"].labels(
            service=self.service_name,
            operation=operation,
            result=result
        ).inc()

    def record_refresh(self, status: str):
        self._metrics["oidc_metadata_refresh_total"].labels(service=self.service_name, status=status).inc()

    @contextmanager
    def time_fetch(self):
        """Time a document fetch, labelling the observation by outcome."""
        start_time = time.time()
        status = "success"
        try:
            yield
        except Exception:
            status = "error"
            raise
        finally:
            self._metrics["oidc_metadata_fetch_duration_seconds"].labels(
                service=self.service_name,
                status=status
            ).observe(time.time() - start_time)


_collectors: Dict[str, MetricsCollector] = {}


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service.

    Collectors bound to the default registry are shared per service name,
    since prometheus_client rejects duplicate registrations.
    """
    if registry is not None:
        return MetricsCollector(service_name, registry)
    if service_name not in _collectors:
        _collectors[service_name] = MetricsCollector(service_name)
    return _collectors[service_name]
