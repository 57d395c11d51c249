"""
airouter - Load Distributor

Spreads a batch of independent requests over the service pool without
per-request scoring.

Pool: every service with availability > 0.5.

Policies:
- round-robin: cycle through the pool in registration order
- weighted: roulette draw with weight = availability x quality / (1 + error_rate),
  computed once per batch
- least-connections: service with the lowest observed throughput

Assignments are fixed before anything is dispatched; dispatch then runs
concurrently under a semaphore. Results keep input order and failures
become failed entries, so one bad call never aborts the batch.
"""

import asyncio
import random
from typing import List, Optional

from ..core.errors import NoServiceAvailableError
from ..core.models import (
    DistributionStrategy,
    EnhancedRoutingResponse,
    RoutingDecision,
    RoutingRequest,
    RoutingStrategy,
    ServiceMetrics,
)
from ..observability.logging import get_logger
from ..observability.metrics import RoutingMetrics
from .dispatch import Dispatcher
from .metrics_store import ServiceMetricsStore
from .scoring import ScoringEngine

logger = get_logger(__name__)

MIN_POOL_AVAILABILITY = 0.5


def distribution_weight(metrics: ServiceMetrics) -> float:
    return metrics.availability * metrics.quality_score / (1 + metrics.error_rate)


class LoadDistributor:
    """Batch dispatch under a load balancing policy."""

    def __init__(
        self,
        store: ServiceMetricsStore,
        dispatcher: Dispatcher,
        scorer: Optional[ScoringEngine] = None,
        max_concurrency: int = 5,
        rng: Optional[random.Random] = None,
        metrics: Optional[RoutingMetrics] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.scorer = scorer or ScoringEngine()
        self.max_concurrency = max(1, max_concurrency)
        self.rng = rng or random.Random()
        self.metrics = metrics

    def pool(self) -> List[ServiceMetrics]:
        return [m for m in self.store.snapshot() if m.availability > MIN_POOL_AVAILABILITY]

    def assign(
        self,
        count: int,
        strategy: DistributionStrategy,
        pool: Optional[List[ServiceMetrics]] = None,
    ) -> List[ServiceMetrics]:
        """
        Pick a service for each of `count` requests.

        Raises:
            NoServiceAvailableError: The pool is empty
        """
        services = self.pool() if pool is None else pool
        if not services:
            raise NoServiceAvailableError(reason="No available services for load distribution")

        strategy = DistributionStrategy(strategy)

        if strategy == DistributionStrategy.ROUND_ROBIN:
            return [services[i % len(services)] for i in range(count)]

        if strategy == DistributionStrategy.WEIGHTED:
            return self._weighted(count, services)

        if strategy == DistributionStrategy.LEAST_CONNECTIONS:
            # min() returns the first service on ties
            least_loaded = min(services, key=lambda m: m.throughput)
            return [least_loaded] * count

        raise ValueError(f"Unhandled distribution strategy: {strategy}")

    def _weighted(self, count: int, services: List[ServiceMetrics]) -> List[ServiceMetrics]:
        weights = [distribution_weight(m) for m in services]
        total = sum(weights)
        if total <= 0:
            return [services[0]] * count

        assigned = []
        for _ in range(count):
            remaining = self.rng.random() * total
            chosen = services[-1]
            for service, weight in zip(services, weights):
                remaining -= weight
                if remaining < 0:
                    chosen = service
                    break
            assigned.append(chosen)
        return assigned

    async def distribute(
        self,
        requests: List[RoutingRequest],
        strategy: DistributionStrategy,
        routing_strategy: RoutingStrategy,
    ) -> List[EnhancedRoutingResponse]:
        """
        Dispatch a batch under a distribution policy.

        Args:
            requests: Requests with ids already assigned
            strategy: Distribution policy
            routing_strategy: Strategy used only to report a score per response

        Returns:
            One response per request, in input order
        """
        strategy = DistributionStrategy(strategy)
        assignments = self.assign(len(requests), strategy)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        logger.info(
            "Distributing load across services",
            request_count=len(requests),
            distribution=strategy.value,
        )

        async def run(request: RoutingRequest, service: ServiceMetrics) -> EnhancedRoutingResponse:
            if self.metrics:
                self.metrics.record_assignment(strategy.value, service.provider)
            async with semaphore:
                try:
                    result = await self.dispatcher.dispatch(request, service.provider, service.model)
                except Exception as e:
                    logger.warning(
                        "Distributed request failed",
                        request_id=request.request_id,
                        provider=service.provider,
                        model=service.model,
                        error=str(e),
                    )
                    return EnhancedRoutingResponse.failed(
                        request_id=request.request_id or "",
                        provider=service.provider,
                        model=service.model,
                        error=str(e),
                    )

            score = self.scorer.score(service, request, routing_strategy)
            decision = RoutingDecision(
                provider=service.provider,
                model=service.model,
                score=score,
                reasoning=[f"Assigned by {strategy.value} distribution"],
            )
            return self.dispatcher.build_response(
                request,
                result,
                score=score,
                quality_score=service.quality_score,
                decision=decision,
            )

        responses = await asyncio.gather(
            *[run(request, service) for request, service in zip(requests, assignments)]
        )

        logger.info(
            "Load distribution completed",
            total_requests=len(requests),
            successful_requests=sum(1 for r in responses if r.success),
        )
        return list(responses)
