"""
airouter - Observability Module

Observability stack for the routing core:
- Prometheus metrics (Counter, Histogram, Gauge)
- OpenTelemetry distributed tracing
- Structured JSON logging with context injection

Usage:
    from airouter.observability import setup_observability, get_logger, get_metrics

    setup_observability(service_name="airouter")

    logger = get_logger(__name__)
    metrics = get_metrics()
"""

from .metrics import (
    RoutingMetrics,
    get_metrics,
    setup_metrics,
    metrics_endpoint,
)
from .tracing import (
    TracingManager,
    get_tracer,
    setup_tracing,
    trace_backend_call,
)
from .logging import (
    StructuredLogger,
    get_logger,
    setup_logging,
    LogContext,
    TimedOperation,
)
from .middleware import (
    ObservabilityMiddleware,
    setup_observability,
)

__all__ = [
    # Metrics
    "RoutingMetrics",
    "get_metrics",
    "setup_metrics",
    "metrics_endpoint",
    # Tracing
    "TracingManager",
    "get_tracer",
    "setup_tracing",
    "trace_backend_call",
    # Logging
    "StructuredLogger",
    "get_logger",
    "setup_logging",
    "LogContext",
    "TimedOperation",
    # Middleware
    "ObservabilityMiddleware",
    "setup_observability",
]
