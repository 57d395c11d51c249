"""
airouter - Concurrent Racer

Sends one request to the top-N ranked candidates at once and keeps the
best successful answer.

- Every participant has its own deadline; a slow one never cancels siblings
- All outcomes are awaited so metrics are recorded for every participant
- Winner = max(0.7 x candidate score + 0.3 x speed of this response)
"""

import asyncio
from typing import List, Optional, Tuple

from ..core.errors import (
    AllCandidatesFailedError,
    InvalidRequestError,
    NoServiceAvailableError,
)
from ..core.models import EnhancedRoutingResponse, RoutingRequest, RoutingStrategy
from ..observability.logging import get_logger
from ..observability.metrics import RoutingMetrics
from .dispatch import DispatchResult, Dispatcher
from .scoring import race_score
from .selector import CandidateSelector, ScoredCandidate

logger = get_logger(__name__)


class ConcurrentRacer:
    """Race dispatch across several candidates."""

    def __init__(
        self,
        selector: CandidateSelector,
        dispatcher: Dispatcher,
        metrics: Optional[RoutingMetrics] = None,
    ):
        self.selector = selector
        self.dispatcher = dispatcher
        self.metrics = metrics

    async def race(
        self,
        request: RoutingRequest,
        concurrency: int,
        strategy: RoutingStrategy,
    ) -> EnhancedRoutingResponse:
        """
        Race the request across up to `concurrency` candidates.

        Raises:
            InvalidRequestError: concurrency < 1
            NoServiceAvailableError: No candidate survived filtering
            AllCandidatesFailedError: Every participant failed
        """
        if concurrency < 1:
            raise InvalidRequestError(
                "concurrency must be at least 1",
                param="concurrency",
                request_id=request.request_id or "",
            )

        ranked = self.selector.rank(request, strategy)
        if not ranked:
            raise NoServiceAvailableError(
                reason="No AI service available for concurrent processing",
                request_id=request.request_id or "",
            )

        participants = ranked[:concurrency]
        logger.info(
            "Racing request across candidates",
            request_id=request.request_id,
            participants=[f"{c.provider}:{c.model}" for c in participants],
        )

        outcomes = await asyncio.gather(
            *[self.dispatcher.dispatch(request, c.provider, c.model) for c in participants],
            return_exceptions=True,
        )

        successes: List[Tuple[ScoredCandidate, DispatchResult]] = []
        errors: List[str] = []
        for candidate, outcome in zip(participants, outcomes):
            ok = not isinstance(outcome, BaseException)
            if self.metrics:
                self.metrics.record_race_participant(ok)
            if ok:
                successes.append((candidate, outcome))
            else:
                errors.append(f"{candidate.provider}:{candidate.model}: {outcome}")
                logger.warning(
                    "Race participant failed",
                    request_id=request.request_id,
                    provider=candidate.provider,
                    model=candidate.model,
                    error=str(outcome),
                )

        if not successes:
            raise AllCandidatesFailedError(
                candidates=[f"{c.provider}:{c.model}" for c in participants],
                errors=errors,
                request_id=request.request_id or "",
            )

        # max() keeps the first of equal values, so ties go to the higher ranked candidate
        winner, result = max(
            successes,
            key=lambda pair: race_score(pair[0].score, pair[1].response_time),
        )

        ordered = [winner] + [c for c in participants if c is not winner]
        decision = self.selector.build_decision(ordered, strategy)
        decision.reasoning.insert(0, f"Selected from {len(participants)} concurrent requests")

        response = self.dispatcher.build_response(
            request,
            result,
            score=winner.score,
            quality_score=winner.metrics.quality_score,
            decision=decision,
        )
        response.metadata.concurrent_results = {
            "total": len(participants),
            "successful": len(successes),
            "selected": f"{winner.provider}:{winner.model}",
        }

        logger.info(
            "Race completed",
            request_id=request.request_id,
            provider=winner.provider,
            model=winner.model,
            successful=len(successes),
        )
        return response
