"""
airouter - Prometheus Metrics

Routing metrics collected with the Prometheus client library.

Metrics exposed:
- airouter_requests_total: Counter of routed requests by provider, model, outcome
- airouter_dispatch_duration_seconds: Histogram of backend dispatch latency
- airouter_cache_events_total: Counter of response cache hits, misses and stores
- airouter_fallback_attempts_total: Counter of fallback attempts
- airouter_routing_decisions_total: Counter of candidate selections per strategy
- airouter_race_participants_total: Counter of concurrent race participants
- airouter_distribution_assignments_total: Counter of batch assignments
- airouter_health_checks_total: Counter of warmup health checks
- airouter_service_availability: Gauge of availability per service

Usage:
    from airouter.observability.metrics import get_metrics, metrics_endpoint

    metrics = get_metrics()
    metrics.record_request(provider="openai", model="gpt-4", outcome="success", duration_seconds=1.2)

    @app.get("/metrics")
    async def metrics():
        return metrics_endpoint()
"""

from typing import Optional

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)


class RoutingMetrics:
    """
    Central metrics collector for the routing core.

    One instance per CollectorRegistry; pass a fresh registry in tests.
    """

    _instance: Optional["RoutingMetrics"] = None

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        self.info = Info(
            "airouter",
            "airouter service information",
            registry=registry,
        )
        self.info.info({"version": "1.0.0", "service": "airouter"})

        self.requests_total = Counter(
            "airouter_requests_total",
            "Total routed requests",
            labelnames=["provider", "model", "outcome"],  # outcome = success/error
            registry=registry,
        )

        # AI calls typically range from 0.1s to 60s+
        self.dispatch_duration = Histogram(
            "airouter_dispatch_duration_seconds",
            "Backend dispatch duration in seconds",
            labelnames=["provider", "model"],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 100.0, float("inf")),
            registry=registry,
        )

        self.cache_events = Counter(
            "airouter_cache_events_total",
            "Response cache events",
            labelnames=["event"],  # hit/miss/store
            registry=registry,
        )

        self.fallback_attempts = Counter(
            "airouter_fallback_attempts_total",
            "Total fallback attempts",
            labelnames=["from_provider", "to_provider", "outcome"],
            registry=registry,
        )

        self.routing_decisions = Counter(
            "airouter_routing_decisions_total",
            "Total routing decisions",
            labelnames=["strategy", "provider", "model"],
            registry=registry,
        )

        self.race_participants = Counter(
            "airouter_race_participants_total",
            "Concurrent race participants by outcome",
            labelnames=["outcome"],
            registry=registry,
        )

        self.distribution_assignments = Counter(
            "airouter_distribution_assignments_total",
            "Batch requests assigned per distribution strategy",
            labelnames=["strategy", "provider"],
            registry=registry,
        )

        self.health_checks = Counter(
            "airouter_health_checks_total",
            "Warmup health checks by resulting status",
            labelnames=["provider", "status"],
            registry=registry,
        )

        self.service_availability = Gauge(
            "airouter_service_availability",
            "Availability of each (provider, model) service",
            labelnames=["provider", "model"],
            registry=registry,
        )

    @classmethod
    def get_instance(cls) -> "RoutingMetrics":
        """Get the process-wide instance bound to the default registry."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def record_request(
        self,
        provider: str,
        model: str,
        outcome: str,
        duration_seconds: Optional[float] = None,
    ):
        """Record a finished dispatch (or a cache hit)."""
        self.requests_total.labels(provider=provider, model=model, outcome=outcome).inc()
        if duration_seconds is not None:
            self.dispatch_duration.labels(provider=provider, model=model).observe(duration_seconds)

    def record_cache_event(self, event: str):
        self.cache_events.labels(event=event).inc()

    def record_fallback(self, from_provider: str, to_provider: str, outcome: str):
        self.fallback_attempts.labels(
            from_provider=from_provider,
            to_provider=to_provider,
            outcome=outcome,
        ).inc()

    def record_routing_decision(self, strategy: str, provider: str, model: str):
        self.routing_decisions.labels(strategy=strategy, provider=provider, model=model).inc()

    def record_race_participant(self, success: bool):
        self.race_participants.labels(outcome="success" if success else "failure").inc()

    def record_assignment(self, strategy: str, provider: str):
        self.distribution_assignments.labels(strategy=strategy, provider=provider).inc()

    def record_health_check(self, provider: str, status: str):
        self.health_checks.labels(provider=provider, status=status).inc()

    def set_availability(self, provider: str, model: str, availability: float):
        self.service_availability.labels(provider=provider, model=model).set(availability)


# Module-level functions for convenience
_metrics_instance: Optional[RoutingMetrics] = None


def setup_metrics(registry: CollectorRegistry = REGISTRY) -> RoutingMetrics:
    """
    Setup metrics collection.

    Safe to call multiple times with the same registry.
    """
    global _metrics_instance

    if _metrics_instance is not None and _metrics_instance.registry is registry:
        return _metrics_instance

    if registry is REGISTRY:
        _metrics_instance = RoutingMetrics.get_instance()
    else:
        _metrics_instance = RoutingMetrics(registry)
    return _metrics_instance


def get_metrics() -> RoutingMetrics:
    """Get the metrics collector, creating the default one on first use."""
    global _metrics_instance
    if _metrics_instance is None:
        _metrics_instance = RoutingMetrics.get_instance()
    return _metrics_instance


def metrics_endpoint(registry: Optional[CollectorRegistry] = None) -> Response:
    """
    Generate Prometheus metrics endpoint response.

    Usage:
        @app.get("/metrics")
        async def metrics():
            return metrics_endpoint()
    """
    content = generate_latest(registry or get_metrics().registry)
    return Response(
        content=content,
        media_type=CONTENT_TYPE_LATEST,
    )
