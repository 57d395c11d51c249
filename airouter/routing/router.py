"""
airouter - Router Service

Request orchestration across AI backends with:
- Response cache in front of selection
- Strategy-driven candidate selection and scoring
- Fallback to other enabled providers when the selected one fails
- Concurrent racing across the top candidates
- Batch load distribution (round-robin, weighted, least-connections)
- Live metrics with periodic refresh from backend counters

Each Router owns its own metrics store, strategy registry and cache, so
independent routers never share state.
"""

import asyncio
import random
import time
from typing import Any, Dict, List, Optional

from ..backends.base import BackendRegistry
from ..core.config import RouterConfig
from ..core.errors import (
    AllCandidatesFailedError,
    AllFallbacksFailedError,
    InvalidRequestError,
    NoServiceAvailableError,
)
from ..core.models import (
    BatchMode,
    DistributionStrategy,
    EnhancedRoutingResponse,
    RoutingDecision,
    RoutingRequest,
    RoutingStrategy,
    generate_request_id,
)
from ..observability.logging import TimedOperation, get_logger, log_context
from ..observability.metrics import RoutingMetrics
from ..observability.tracing import trace_backend_call
from .cache import CacheStore, ResponseCache
from .dispatch import Dispatcher
from .distributor import LoadDistributor
from .fallback import FALLBACK_PLACEHOLDER_SCORE, FallbackChain
from .metrics_store import ServiceMetricsStore
from .racer import ConcurrentRacer
from .scoring import ScoringEngine
from .selector import CandidateSelector
from .strategies import StrategyRegistry
from .validation import validate_request

logger = get_logger(__name__)

# Availability seeded by warmup
WARMUP_HEALTHY_AVAILABILITY = 1.0
WARMUP_DEGRADED_AVAILABILITY = 0.5
WARMUP_FAILED_AVAILABILITY = 0.1

DEFAULT_RACE_CONCURRENCY = 2


class Router:
    """
    Routing core.

    Usage:
        router = Router(config, BackendRegistry([...]))
        await router.start()
        response = await router.route_request(RoutingRequest(prompt="Hello"))
        await router.close()
    """

    def __init__(
        self,
        config: Optional[RouterConfig] = None,
        backends: Optional[BackendRegistry] = None,
        cache_store: Optional[CacheStore] = None,
        metrics: Optional[RoutingMetrics] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the router.

        Args:
            config: Provider catalog and global flags
            backends: Backend clients keyed by provider id
            cache_store: Response cache backing store (in-memory by default)
            metrics: Prometheus collector; None disables metric export
            rng: Random source for weighted distribution
        """
        self.config = config or RouterConfig()
        self.backends = backends or BackendRegistry()
        self.metrics = metrics

        self.store = ServiceMetricsStore(self.config.providers)
        self.strategies = StrategyRegistry(active=self.config.default_strategy)
        self.scorer = ScoringEngine()
        self.selector = CandidateSelector(self.store, self.scorer)
        self.cache = ResponseCache(cache_store, ttl=self.config.cache_ttl)

        self.dispatcher = Dispatcher(self.backends, self.store, self.config, metrics)
        self.racer = ConcurrentRacer(self.selector, self.dispatcher, metrics)
        self.distributor = LoadDistributor(
            self.store,
            self.dispatcher,
            scorer=self.scorer,
            max_concurrency=self.config.max_concurrency,
            rng=rng,
            metrics=metrics,
        )

        self._refresh_task: Optional[asyncio.Task] = None
        self._cleanup_task: Optional[asyncio.Task] = None

        logger.info(
            "Router initialized",
            services=len(self.store),
            strategy=self.strategies.active_name,
            fallback_enabled=self.config.fallback_enabled,
            caching_enabled=self.config.caching_enabled,
        )

    def _prepare(self, request: RoutingRequest):
        if not request.request_id:
            request.request_id = generate_request_id()
        validate_request(request)

    # ============================================================
    # Single request
    # ============================================================

    async def route_request(self, request: RoutingRequest) -> EnhancedRoutingResponse:
        """
        Route one request.

        Returns:
            Response from the cache, the selected candidate or a fallback

        Raises:
            InvalidRequestError: Request failed validation
            UnknownStrategyError: Active strategy is not registered
            NoServiceAvailableError: No candidate survived filtering
            AllFallbacksFailedError: Primary failed and no fallback candidate exists
            Exception: The primary's original error when every fallback failed
                or fallback is disabled
        """
        self._prepare(request)
        strategy = self.strategies.active

        logger.info(
            "Routing AI request",
            request_id=request.request_id,
            strategy=strategy.name,
        )

        if self.config.caching_enabled:
            cached = await self.cache.lookup(request, strategy.name)
            self._record_cache_event("hit" if cached else "miss")
            if cached:
                logger.info("Cache hit", request_id=request.request_id, provider=cached.provider)
                return cached

        decision = self._select(request, strategy)
        selected = self.store.get((decision.provider, decision.model))
        quality = selected.quality_score if selected else 0.0

        try:
            result = await self.dispatcher.dispatch(request, decision.provider, decision.model)
        except Exception as e:
            logger.warning(
                "Primary dispatch failed",
                request_id=request.request_id,
                provider=decision.provider,
                model=decision.model,
                error=str(e),
            )
            if not self.config.fallback_enabled:
                raise
            return await self._fallback(request, decision.provider, e)

        response = self.dispatcher.build_response(
            request,
            result,
            score=decision.score,
            quality_score=quality,
            decision=decision,
        )
        await self._store_in_cache(request, strategy, response)

        logger.info(
            "AI request routed",
            request_id=request.request_id,
            provider=response.provider,
            model=response.model,
            response_time_ms=round(response.response_time, 2),
        )
        return response

    def _select(self, request: RoutingRequest, strategy: RoutingStrategy) -> RoutingDecision:
        try:
            with TimedOperation(
                "candidate_selection",
                logger,
                extra={"request_id": request.request_id, "strategy": strategy.name},
            ):
                decision = self.selector.select(request, strategy)
        except NoServiceAvailableError:
            logger.error("No service available", request_id=request.request_id, strategy=strategy.name)
            raise

        if self.metrics:
            self.metrics.record_routing_decision(strategy.name, decision.provider, decision.model)
        return decision

    async def _fallback(
        self,
        request: RoutingRequest,
        failed_provider: str,
        original_error: Exception,
    ) -> EnhancedRoutingResponse:
        """Try the other enabled providers in configuration order."""
        chain = FallbackChain.for_request(self.config, request, failed_provider)

        if chain.is_empty():
            logger.error(
                "No fallback providers available",
                request_id=request.request_id,
                failed_provider=failed_provider,
            )
            raise AllFallbacksFailedError(
                failed_provider=failed_provider,
                original_error=original_error,
                providers_tried=[],
                request_id=request.request_id or "",
            ) from original_error

        entry = chain.get_next()
        while entry:
            provider, model = entry
            start = time.perf_counter()
            try:
                result = await self.dispatcher.dispatch(request, provider, model)
            except Exception as e:
                duration_ms = int((time.perf_counter() - start) * 1000)
                chain.record_attempt(provider, model, str(e), duration_ms)
                self._record_fallback(failed_provider, provider, "failure")
                logger.warning(
                    "Fallback attempt failed",
                    request_id=request.request_id,
                    provider=provider,
                    model=model,
                    error=str(e),
                )
                entry = chain.get_next()
                continue

            self._record_fallback(failed_provider, provider, "success")
            outcome = chain.get_result(success=True, final_provider=provider, final_model=model)
            decision = RoutingDecision(
                provider=provider,
                model=result.generation.model or model or "",
                score=FALLBACK_PLACEHOLDER_SCORE,
                reasoning=[
                    f"Fallback after {failed_provider} failed",
                    f"Fallback attempts: {outcome.total_attempts + 1}",
                ],
            )
            logger.info(
                "Fallback succeeded",
                request_id=request.request_id,
                failed_provider=failed_provider,
                provider=provider,
                failed_attempts=outcome.total_attempts,
            )
            return self.dispatcher.build_response(
                request,
                result,
                score=FALLBACK_PLACEHOLDER_SCORE,
                quality_score=FALLBACK_PLACEHOLDER_SCORE,
                decision=decision,
                fallback_used=True,
                fallback_chain=[failed_provider] + outcome.providers_tried,
            )

        outcome = chain.get_result(success=False)
        logger.error(
            "All fallbacks failed",
            request_id=request.request_id,
            failed_provider=failed_provider,
            providers_tried=outcome.providers_tried,
            total_duration_ms=outcome.total_duration_ms,
        )
        raise original_error

    # ============================================================
    # Racing
    # ============================================================

    async def route_concurrent_request(
        self,
        request: RoutingRequest,
        concurrency: int = DEFAULT_RACE_CONCURRENCY,
    ) -> EnhancedRoutingResponse:
        """
        Race the request across the top `concurrency` candidates.

        When every participant fails the request is routed normally,
        which includes fallback.
        """
        self._prepare(request)
        strategy = self.strategies.active

        try:
            response = await self.racer.race(request, concurrency, strategy)
        except AllCandidatesFailedError as e:
            logger.warning(
                "Concurrent request failed, degrading to single routing",
                request_id=request.request_id,
                candidates=e.candidates,
            )
            return await self.route_request(request)

        await self._store_in_cache(request, strategy, response)
        return response

    # ============================================================
    # Batches
    # ============================================================

    async def distribute_load(
        self,
        requests: List[RoutingRequest],
        strategy: DistributionStrategy = DistributionStrategy.WEIGHTED,
    ) -> List[EnhancedRoutingResponse]:
        """
        Spread a batch over the pool.

        Requests that fail validation become failed entries and are not
        dispatched; the rest are distributed.

        Returns:
            One response per request, in input order

        Raises:
            NoServiceAvailableError: No service has availability above 0.5
        """
        responses: List[Optional[EnhancedRoutingResponse]] = [None] * len(requests)
        valid: List[int] = []
        for i, request in enumerate(requests):
            try:
                self._prepare(request)
            except InvalidRequestError as e:
                logger.warning("Batch item rejected", request_id=request.request_id, error=str(e))
                responses[i] = EnhancedRoutingResponse.failed(
                    request_id=request.request_id or "",
                    provider="",
                    model="",
                    error=str(e),
                )
                continue
            valid.append(i)

        if valid:
            distributed = await self.distributor.distribute(
                [requests[i] for i in valid],
                strategy,
                self.strategies.active,
            )
            for i, response in zip(valid, distributed):
                responses[i] = response
        return responses

    async def process_batch(
        self,
        requests: List[RoutingRequest],
        mode: BatchMode = BatchMode.CONCURRENT,
    ) -> List[EnhancedRoutingResponse]:
        """
        Route every request of a batch with the full single-request path.

        Modes:
            sequential: one after another
            parallel: all at once
            concurrent: chunks of config.max_concurrency

        Returns:
            Responses in input order; failures become failed entries
        """
        mode = BatchMode(mode)
        logger.info("Processing batch", request_count=len(requests), mode=mode.value)

        if mode == BatchMode.SEQUENTIAL:
            return [await self._route_or_fail(r) for r in requests]

        if mode == BatchMode.PARALLEL:
            return list(await asyncio.gather(*[self._route_or_fail(r) for r in requests]))

        size = max(1, self.config.max_concurrency)
        responses: List[EnhancedRoutingResponse] = []
        for i in range(0, len(requests), size):
            chunk = requests[i:i + size]
            responses.extend(await asyncio.gather(*[self._route_or_fail(r) for r in chunk]))
        return responses

    async def _route_or_fail(self, request: RoutingRequest) -> EnhancedRoutingResponse:
        try:
            return await self.route_request(request)
        except Exception as e:
            logger.warning("Batch item failed", request_id=request.request_id, error=str(e))
            return EnhancedRoutingResponse.failed(
                request_id=request.request_id or "",
                provider="",
                model="",
                error=str(e),
            )

    # ============================================================
    # Strategies
    # ============================================================

    def set_routing_strategy(self, name: str):
        """Switch the active strategy; raises UnknownStrategyError."""
        self.strategies.set_active(name)

    def get_available_strategies(self) -> List[str]:
        return self.strategies.names()

    def add_routing_strategy(self, strategy: RoutingStrategy):
        self.strategies.register(strategy)

    # ============================================================
    # Health & metrics
    # ============================================================

    @log_context(operation="warmup")
    async def warmup_services(self, provider_ids: Optional[List[str]] = None):
        """
        Health check providers and seed their metrics.

        healthy -> availability 1.0, any other status -> 0.5,
        failed check -> 0.1. A reported response time replaces the
        average response time.
        """
        if provider_ids is None:
            targets = [p.id for p in self.config.enabled_providers()]
        else:
            targets = list(provider_ids)
        logger.info("Warming up AI services", providers=targets)

        results = await asyncio.gather(
            *[self._health_check(pid) for pid in targets],
            return_exceptions=True,
        )

        for provider_id, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Failed to warm up service",
                    provider=provider_id,
                    error=str(result),
                )
                self.store.seed_provider(provider_id, WARMUP_FAILED_AVAILABILITY)
                status = "error"
            else:
                availability = (
                    WARMUP_HEALTHY_AVAILABILITY if result.is_healthy else WARMUP_DEGRADED_AVAILABILITY
                )
                self.store.seed_provider(provider_id, availability, result.response_time or None)
                status = result.status
                logger.info(
                    "Service warmed up",
                    provider=provider_id,
                    status=result.status,
                    response_time_ms=result.response_time,
                )
            if self.metrics:
                self.metrics.record_health_check(provider_id, status)

        self._export_availability()
        logger.info("Service warmup completed")

    async def _health_check(self, provider_id: str):
        backend = self.backends.get(provider_id)
        with trace_backend_call(provider_id, "", operation="health_check"):
            return await backend.health_check()

    def refresh_metrics(self):
        """Pull pooled counters from every backend into the metrics store."""
        self.store.refresh_from_external_stats(self.backends.get_service_stats())
        self._export_availability()

    def _export_availability(self):
        if not self.metrics:
            return
        for (provider, model), m in self.store.iterate():
            self.metrics.set_availability(provider, model, m.availability)

    def get_routing_stats(self) -> Dict[str, Any]:
        active_name = self.strategies.active_name
        active = self.strategies.get(active_name) if active_name in self.strategies else None
        entries = self.store.iterate()

        return {
            "current_strategy": active_name,
            "strategy_description": active.description if active else None,
            "total_requests": sum(m.request_count for _, m in entries),
            "cache_stats": self.cache.get_stats(),
            "service_metrics": {f"{p}:{mdl}": m.to_dict() for (p, mdl), m in entries},
            "available_providers": [p.id for p in self.config.enabled_providers()],
        }

    # ============================================================
    # Lifecycle
    # ============================================================

    async def start(self):
        """Start the metrics refresh and cache cleanup loops."""
        if self._refresh_task is None:
            self._refresh_task = asyncio.create_task(
                self._periodic(self.config.metrics_refresh_interval, self._refresh_once, "metrics_refresh")
            )
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(
                self._periodic(self.config.cache_cleanup_interval, self.cache.cleanup_expired, "cache_cleanup")
            )

    async def _refresh_once(self):
        self.refresh_metrics()

    async def _periodic(self, interval: float, job, name: str):
        while True:
            await asyncio.sleep(interval)
            try:
                await job()
            except Exception:
                logger.exception("Background job failed", job=name)

    async def stop(self):
        """Stop background loops."""
        for task in (self._refresh_task, self._cleanup_task):
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._refresh_task = None
        self._cleanup_task = None

    async def close(self):
        """Stop background loops and close backend clients."""
        await self.stop()
        await self.backends.close_all()

    async def destroy(self):
        """Tear down: stop loops, clear cache, metrics and strategies."""
        await self.stop()
        await self.cache.clear()
        self.store.reset()
        self.strategies.clear()
        logger.info("Router destroyed")

    async def _store_in_cache(
        self,
        request: RoutingRequest,
        strategy: RoutingStrategy,
        response: EnhancedRoutingResponse,
    ):
        if not self.config.caching_enabled:
            return
        if await self.cache.store_response(request, strategy.name, response):
            self._record_cache_event("store")

    def _record_cache_event(self, event: str):
        if self.metrics:
            self.metrics.record_cache_event(event)

    def _record_fallback(self, from_provider: str, to_provider: str, outcome: str):
        if self.metrics:
            self.metrics.record_fallback(from_provider, to_provider, outcome)
