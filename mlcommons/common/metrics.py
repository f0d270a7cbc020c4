"""Metrics collection for the ML engine.

Provides a thin convenience wrapper around ``prometheus_client`` so the
dispatcher and the connector executors record training, prediction, and
remote-invocation metrics consistently.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A single registry is kept per collector (can be injected if needed)
"""

from typing import Optional

from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest
import structlog

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection for the ML engine.

    Parameters
    - service_name: Logical name used for scoping/labels if desired
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)

    Exposes typed helpers for common events to keep label sets consistent.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.train_requests = Counter(
            'ml_train_requests_total',
            'Total training requests',
            ['algorithm', 'status'],
            registry=self.registry
        )

        self.train_duration = Histogram(
            'ml_train_duration_seconds',
            'Training duration',
            ['algorithm'],
            registry=self.registry
        )

        self.predict_requests = Counter(
            'ml_predict_requests_total',
            'Total prediction requests',
            ['algorithm', 'status'],
            registry=self.registry
        )

        self.predict_duration = Histogram(
            'ml_predict_duration_seconds',
            'Prediction duration',
            ['algorithm'],
            registry=self.registry
        )

        self.predict_rows = Counter(
            'ml_predict_rows_total',
            'Total rows scored by local prediction',
            ['algorithm'],
            registry=self.registry
        )

        self.remote_invocations = Counter(
            'ml_remote_invocations_total',
            'Total remote model invocations',
            ['connector', 'method', 'status'],
            registry=self.registry
        )

        self.remote_invocation_duration = Histogram(
            'ml_remote_invocation_duration_seconds',
            'Remote model invocation duration',
            ['connector'],
            registry=self.registry
        )

    def record_train(self, algorithm: str, status: str, duration: float) -> None:
        """Record a training call."""
        self.train_requests.labels(algorithm=algorithm, status=status).inc()
        self.train_duration.labels(algorithm=algorithm).observe(duration)

    def record_predict(self, algorithm: str, status: str, duration: float, rows: int = 0) -> None:
        """Record a prediction call and the number of rows it produced."""
        self.predict_requests.labels(algorithm=algorithm, status=status).inc()
        self.predict_duration.labels(algorithm=algorithm).observe(duration)
        if rows:
            self.predict_rows.labels(algorithm=algorithm).inc(rows)

    def record_remote_invocation(self, connector: str, method: str, status: str, duration: float) -> None:
        """Record a remote model invocation."""
        self.remote_invocations.labels(connector=connector, method=method, status=status).inc()
        self.remote_invocation_duration.labels(connector=connector).observe(duration)

    def get_metrics(self) -> str:
        """Render metrics in the Prometheus exposition format."""
        return generate_latest(self.registry).decode("utf-8")


def create_metrics_collector(service_name: str) -> MetricsCollector:
    """Create a metrics collector with its own registry."""
    return MetricsCollector(service_name)
