"""
Prometheus metrics collection.
"""

import logging

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from docqueue.config import get_settings
from docqueue.constants import (
    METRIC_CLAIMS_EMPTY,
    METRIC_JOB_DURATION,
    METRIC_JOBS_CLAIMED,
    METRIC_JOBS_ENQUEUED,
    METRIC_JOBS_FINISHED,
    METRIC_JOBS_REMOVED,
    METRIC_QUEUE_DEPTH,
)

logger = logging.getLogger(__name__)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for queue operations.

    Collects metrics for:
    - Queue depth
    - Enqueued, claimed and finished jobs
    - Jobs removed by maintenance
    - Handler duration in workers
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of pending jobs in the queue",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_enqueued = Counter(
            METRIC_JOBS_ENQUEUED,
            "Total number of jobs enqueued",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_claimed = Counter(
            METRIC_JOBS_CLAIMED,
            "Total number of jobs claimed",
            ["queue", "worker_id"],
            registry=self._registry,
        )

        self.claims_empty = Counter(
            METRIC_CLAIMS_EMPTY,
            "Total number of claims that found no eligible job",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_finished = Counter(
            METRIC_JOBS_FINISHED,
            "Total number of jobs acknowledged or failed",
            ["queue", "outcome"],
            registry=self._registry,
        )

        self.jobs_removed = Counter(
            METRIC_JOBS_REMOVED,
            "Total number of jobs deleted by maintenance",
            ["queue", "reason"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Job handler duration in seconds",
            ["queue", "outcome"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

    def record_job_enqueued(self, queue: str) -> None:
        """Record an enqueue."""
        self.jobs_enqueued.labels(queue=queue).inc()

    def record_job_claimed(self, queue: str, worker_id: str) -> None:
        """Record a successful claim."""
        self.jobs_claimed.labels(queue=queue, worker_id=worker_id).inc()

    def record_claim_empty(self, queue: str) -> None:
        """Record a claim that returned nothing."""
        self.claims_empty.labels(queue=queue).inc()

    def record_job_finished(self, queue: str, outcome: str) -> None:
        """Record an acknowledge or fail."""
        self.jobs_finished.labels(queue=queue, outcome=outcome).inc()

    def record_jobs_removed(self, queue: str, reason: str, count: int) -> None:
        """Record jobs deleted by clean or reset."""
        if count > 0:
            self.jobs_removed.labels(queue=queue, reason=reason).inc(count)

    def record_job_duration(self, queue: str, outcome: str, duration_seconds: float) -> None:
        """Record how long a handler ran."""
        self.job_duration.labels(queue=queue, outcome=outcome).observe(duration_seconds)

    def update_queue_depth(self, queue: str, depth: int) -> None:
        """Update queue depth."""
        self.queue_depth.labels(queue=queue).set(depth)


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics


def start_metrics_server(port: int | None = None) -> bool:
    """
    Expose the default registry over HTTP for Prometheus to scrape.

    Args:
        port: Port to listen on, defaults to the ``METRICS_PORT`` setting.
            Nothing is started when neither is set.

    Returns:
        True if a server was started.
    """
    port = port or get_settings().metrics_port
    if not port:
        return False

    start_http_server(port)
    logger.info("Metrics server started", extra={"port": port})
    return True
