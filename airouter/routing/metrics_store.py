"""
airouter - Service Metrics Store

Live metrics per (provider, model) service with:
- Exponential moving average (alpha=0.3) of response time and success rate
- Periodic refresh of availability and error rate from backend pool counters
- Seeding from warmup health checks

Entries are created from the provider catalog and never removed until
reset(). Readers receive copies, so callers cannot mutate stored state.
"""

import time
from dataclasses import replace
from threading import Lock
from typing import Dict, List, Mapping, Optional, Tuple

from ..core.config import ModelConfig, ProviderConfig
from ..core.models import BackendStats, ServiceKey, ServiceMetrics

# Smoothing factor for EMA updates
EMA_ALPHA = 0.3

SPEED_TIER_RESPONSE_MS = {
    "fast": 800.0,
    "medium": 2000.0,
    "slow": 5000.0,
}
DEFAULT_RESPONSE_MS = 2000.0

QUALITY_TIER_SCORE = {
    "basic": 0.6,
    "good": 0.8,
    "excellent": 1.0,
}
DEFAULT_QUALITY_SCORE = 0.7


def ema(sample: float, current: float, alpha: float = EMA_ALPHA) -> float:
    """alpha * sample + (1 - alpha) * current"""
    return alpha * sample + (1 - alpha) * current


def initial_metrics(provider_id: str, model: ModelConfig) -> ServiceMetrics:
    """Starting metrics for a catalog model."""
    return ServiceMetrics(
        provider=provider_id,
        model=model.id,
        availability=1.0,
        average_response_time=SPEED_TIER_RESPONSE_MS.get(model.speed, DEFAULT_RESPONSE_MS),
        error_rate=0.0,
        cost_per_token=(model.input_cost + model.output_cost) / 2,
        quality_score=QUALITY_TIER_SCORE.get(model.quality, DEFAULT_QUALITY_SCORE),
        throughput=0.0,
        request_count=0,
        success_rate=1.0,
    )


class ServiceMetricsStore:
    """
    Owner of all ServiceMetrics.

    Every mutation is a short critical section under a lock that is never
    held across an await, so read-modify-write EMA updates stay atomic even
    when the store is shared with worker threads.
    """

    def __init__(self, providers: Optional[List[ProviderConfig]] = None):
        self._lock = Lock()
        self._metrics: Dict[ServiceKey, ServiceMetrics] = {}
        for provider in providers or []:
            if not provider.enabled:
                continue
            for model in provider.enabled_models():
                self.add(initial_metrics(provider.id, model))

    def add(self, metrics: ServiceMetrics):
        """Register a service; an existing entry for the same key is kept."""
        with self._lock:
            self._metrics.setdefault(metrics.key, replace(metrics))

    def get(self, key: ServiceKey) -> Optional[ServiceMetrics]:
        """Copy of the metrics for a service, or None."""
        with self._lock:
            metrics = self._metrics.get(key)
            return replace(metrics) if metrics else None

    def iterate(self) -> List[Tuple[ServiceKey, ServiceMetrics]]:
        """Snapshot of every (key, metrics) pair in registration order."""
        with self._lock:
            return [(key, replace(m)) for key, m in self._metrics.items()]

    def snapshot(self) -> List[ServiceMetrics]:
        return [m for _, m in self.iterate()]

    def update(self, key: ServiceKey, response_time_ms: float, success: bool) -> Optional[ServiceMetrics]:
        """
        Fold one completed call into the service's metrics.

        Args:
            key: (provider, model)
            response_time_ms: Observed wall-clock time of the call
            success: Whether the call succeeded

        Returns:
            Copy of the updated metrics, or None for an unknown key
        """
        with self._lock:
            metrics = self._metrics.get(key)
            if metrics is None:
                return None

            metrics.average_response_time = ema(response_time_ms, metrics.average_response_time)
            metrics.success_rate = ema(1.0 if success else 0.0, metrics.success_rate)
            metrics.request_count += 1
            metrics.last_used = time.time()
            return replace(metrics)

    def refresh_from_external_stats(self, stats_by_provider: Mapping[str, BackendStats]):
        """
        Recompute availability and error rate from backend pool counters.

        availability = healthy / total instances (unchanged when total is 0)
        error_rate = errors / max(requests, 1)
        throughput = observed request count
        """
        with self._lock:
            for metrics in self._metrics.values():
                stats = stats_by_provider.get(metrics.provider)
                if stats is None:
                    continue
                if stats.instance_count > 0:
                    metrics.availability = stats.healthy_instances / stats.instance_count
                metrics.error_rate = stats.total_errors / max(stats.total_requests, 1)
                metrics.throughput = float(stats.total_requests)

    def seed_provider(
        self,
        provider_id: str,
        availability: float,
        response_time_ms: Optional[float] = None,
    ) -> int:
        """
        Set availability (and optionally response time) for every model of
        a provider. Used by warmup.

        Returns:
            Number of services updated
        """
        updated = 0
        with self._lock:
            for metrics in self._metrics.values():
                if metrics.provider != provider_id:
                    continue
                metrics.availability = availability
                if response_time_ms is not None:
                    metrics.average_response_time = response_time_ms
                updated += 1
        return updated

    def reset(self):
        """Drop every entry."""
        with self._lock:
            self._metrics.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)
