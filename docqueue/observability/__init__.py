"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from docqueue.observability.logging import bind_context, setup_logging
from docqueue.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
    start_metrics_server,
)
from docqueue.observability.tracing import get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "bind_context",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "start_metrics_server",
    "setup_tracing",
    "get_tracer",
]
