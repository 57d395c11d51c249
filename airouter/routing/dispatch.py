"""
airouter - Backend Dispatch

Single path every routing mode uses to call a backend:

1. Resolve the client for the provider
2. Call generate_text under a per-call deadline and a client span
3. Fold the outcome into the metrics store (success or failure)
4. Count it in Prometheus

Also builds the EnhancedRoutingResponse for a successful call.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import List, Optional

from ..backends.base import BackendRegistry
from ..core.config import RouterConfig
from ..core.errors import BackendTimeoutError
from ..core.models import (
    EnhancedRoutingResponse,
    GenerationResult,
    ResponseMetadata,
    RoutingDecision,
    RoutingRequest,
    TokenUsage,
)
from ..observability.logging import get_logger
from ..observability.metrics import RoutingMetrics
from ..observability.tracing import trace_backend_call
from .metrics_store import ServiceMetricsStore
from .scoring import cost_efficiency

logger = get_logger(__name__)


@dataclass
class DispatchResult:
    """A successful backend call."""
    provider: str
    model: Optional[str]
    generation: GenerationResult
    response_time: float  # ms


class Dispatcher:
    """Calls backends and records what happened."""

    def __init__(
        self,
        backends: BackendRegistry,
        store: ServiceMetricsStore,
        config: RouterConfig,
        metrics: Optional[RoutingMetrics] = None,
    ):
        self.backends = backends
        self.store = store
        self.config = config
        self.metrics = metrics

    def timeout_for(self, request: RoutingRequest) -> float:
        """Per-call deadline in seconds."""
        constraints = request.constraints
        if constraints and constraints.max_response_time:
            return constraints.max_response_time / 1000
        return self.config.request_timeout

    async def dispatch(
        self,
        request: RoutingRequest,
        provider: str,
        model: Optional[str],
    ) -> DispatchResult:
        """
        Call one backend.

        Raises:
            BackendTimeoutError: The deadline expired
            BackendNotFoundError: No client for the provider
            Exception: Whatever the backend client raised
        """
        timeout = self.timeout_for(request)
        request_id = request.request_id or ""

        start = time.perf_counter()
        success = False
        try:
            backend = self.backends.get(provider)
            with trace_backend_call(provider, model or ""):
                try:
                    generation = await asyncio.wait_for(
                        backend.generate_text(
                            request.full_prompt(),
                            model,
                            request.params,
                            request_id=request_id,
                        ),
                        timeout=timeout,
                    )
                except asyncio.TimeoutError:
                    raise BackendTimeoutError(
                        provider=provider,
                        timeout_ms=timeout * 1000,
                        model=model,
                        request_id=request_id,
                    ) from None
            success = True
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self._record(provider, model, elapsed_ms, success)

        return DispatchResult(
            provider=provider,
            model=model,
            generation=generation,
            response_time=elapsed_ms,
        )

    def _record(self, provider: str, model: Optional[str], elapsed_ms: float, success: bool):
        if model is not None:
            self.store.update((provider, model), elapsed_ms, success)

        if self.metrics:
            self.metrics.record_request(
                provider=provider,
                model=model or "default",
                outcome="success" if success else "error",
                duration_seconds=elapsed_ms / 1000,
            )

        if not success:
            logger.debug(
                "Backend dispatch failed",
                provider=provider,
                model=model,
                duration_ms=round(elapsed_ms, 2),
            )

    def build_response(
        self,
        request: RoutingRequest,
        result: DispatchResult,
        score: float,
        quality_score: float,
        decision: Optional[RoutingDecision] = None,
        fallback_used: bool = False,
        fallback_chain: Optional[List[str]] = None,
    ) -> EnhancedRoutingResponse:
        """
        Response for a successful dispatch.

        The backend's estimated cost wins; otherwise cost is
        cost_per_token x total_tokens of the serving model.
        """
        usage = result.generation.usage or TokenUsage()
        cost = usage.estimated_cost
        if not cost:
            metrics = self.store.get((result.provider, result.model)) if result.model else None
            cost = metrics.cost_per_token * usage.total_tokens if metrics else 0.0

        return EnhancedRoutingResponse(
            id=request.request_id or "",
            provider=result.provider,
            model=result.generation.model or result.model or "",
            content=result.generation.content,
            usage=TokenUsage(
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
                total_tokens=usage.total_tokens,
                estimated_cost=cost,
            ),
            response_time=result.response_time,
            success=True,
            metadata=ResponseMetadata(
                routing_decision=decision,
                fallback_used=fallback_used,
                cache_hit=False,
                cost_efficiency=cost_efficiency(score, cost),
                quality_score=quality_score,
                fallback_chain=list(fallback_chain or []),
            ),
        )
