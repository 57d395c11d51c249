"""
airouter - Candidate Selector

Turns the metrics store into a ranked candidate list for one request:

1. Filter: drop services with availability < 0.3 or violating a hard
   constraint (max response time, max cost, allow/block lists, min quality)
2. Rules: apply the strategy's rules in order; each re-sorts or filters
3. Score & rank: score every survivor and stable-sort descending, so ties
   keep the order produced by the rules
4. Decide: top candidate plus the next two as alternatives
"""

from dataclasses import dataclass
from typing import List, Optional

from ..core.errors import NoServiceAvailableError
from ..core.models import (
    Alternative,
    RoutingDecision,
    RoutingRequest,
    RoutingRule,
    RoutingStrategy,
    RuleAction,
    ServiceMetrics,
)
from .metrics_store import ServiceMetricsStore
from .scoring import ScoringEngine, alternative_reason
from .strategies import LOW_AVAILABILITY_THRESHOLD

MIN_AVAILABILITY = 0.3

# Token estimate used for cost limits when the request sets no max_tokens
DEFAULT_TOKEN_ESTIMATE = 1000

MAX_ALTERNATIVES = 2


@dataclass
class ScoredCandidate:
    """A candidate with its calculated score."""
    metrics: ServiceMetrics
    score: float

    @property
    def provider(self) -> str:
        return self.metrics.provider

    @property
    def model(self) -> str:
        return self.metrics.model


def estimated_cost(metrics: ServiceMetrics, request: RoutingRequest) -> float:
    """Worst-case cost of the request on a service."""
    tokens = request.params.max_tokens or DEFAULT_TOKEN_ESTIMATE
    return metrics.cost_per_token * tokens


def passes_constraints(metrics: ServiceMetrics, request: RoutingRequest) -> bool:
    """Hard filter shared by every strategy."""
    if metrics.availability < MIN_AVAILABILITY:
        return False

    constraints = request.constraints
    if constraints is None:
        return True

    if constraints.max_response_time is not None:
        if metrics.average_response_time > constraints.max_response_time:
            return False

    if constraints.max_cost is not None:
        if estimated_cost(metrics, request) > constraints.max_cost:
            return False

    if constraints.allowed_providers:
        if metrics.provider not in constraints.allowed_providers:
            return False

    if constraints.blocked_providers:
        if metrics.provider in constraints.blocked_providers:
            return False

    if constraints.min_quality is not None:
        if metrics.quality_score < constraints.min_quality:
            return False

    return True


def apply_rule(
    rule: RoutingRule,
    candidates: List[ServiceMetrics],
    request: RoutingRequest,
) -> List[ServiceMetrics]:
    """Apply one rule; sorts are stable and filters keep order."""
    constraints = request.constraints
    action = rule.action

    if action == RuleAction.PREFER_CHEAPEST:
        return sorted(candidates, key=lambda m: m.cost_per_token)

    if action == RuleAction.PREFER_FASTEST:
        return sorted(candidates, key=lambda m: m.average_response_time)

    if action == RuleAction.PREFER_HIGHEST_QUALITY:
        return sorted(candidates, key=lambda m: m.quality_score, reverse=True)

    if action == RuleAction.FILTER_BY_COST:
        if constraints is None or constraints.max_cost is None:
            return candidates
        return [m for m in candidates if estimated_cost(m, request) <= constraints.max_cost]

    if action == RuleAction.FILTER_BY_RESPONSE_TIME:
        if constraints is None or constraints.max_response_time is None:
            return candidates
        return [m for m in candidates if m.average_response_time <= constraints.max_response_time]

    if action == RuleAction.FILTER_BY_QUALITY:
        if constraints is None or constraints.min_quality is None:
            return candidates
        return [m for m in candidates if m.quality_score >= constraints.min_quality]

    if action == RuleAction.SWITCH_ON_LOW_AVAILABILITY:
        threshold = rule.threshold if rule.threshold is not None else LOW_AVAILABILITY_THRESHOLD
        return [m for m in candidates if m.availability > threshold]

    raise ValueError(f"Unhandled rule action: {action}")


class CandidateSelector:
    """Filters, orders and scores candidates from a metrics store."""

    def __init__(self, store: ServiceMetricsStore, scorer: Optional[ScoringEngine] = None):
        self.store = store
        self.scorer = scorer or ScoringEngine()

    def filter(self, request: RoutingRequest) -> List[ServiceMetrics]:
        return [m for m in self.store.snapshot() if passes_constraints(m, request)]

    def rank(self, request: RoutingRequest, strategy: RoutingStrategy) -> List[ScoredCandidate]:
        """
        Ranked candidates for a request.

        Returns:
            Candidates sorted by score, best first; may be empty
        """
        candidates = self.filter(request)

        for rule in strategy.rules:
            candidates = apply_rule(rule, candidates, request)

        scored = [
            ScoredCandidate(metrics=m, score=self.scorer.score(m, request, strategy))
            for m in candidates
        ]
        # Python's sort is stable: equal scores keep rule order
        scored.sort(key=lambda c: c.score, reverse=True)
        return scored

    def select(self, request: RoutingRequest, strategy: RoutingStrategy) -> RoutingDecision:
        """
        Pick the best candidate.

        Raises:
            NoServiceAvailableError: nothing survived filtering
        """
        ranked = self.rank(request, strategy)
        if not ranked:
            raise NoServiceAvailableError(
                reason=f"No AI service satisfies the constraints under strategy '{strategy.name}'",
                request_id=request.request_id or "",
            )
        return self.build_decision(ranked, strategy)

    @staticmethod
    def build_decision(ranked: List[ScoredCandidate], strategy: RoutingStrategy) -> RoutingDecision:
        best = ranked[0]
        m = best.metrics

        return RoutingDecision(
            provider=m.provider,
            model=m.model,
            score=best.score,
            reasoning=[
                f"Selected based on {strategy.name} strategy",
                f"Score: {best.score:.3f}",
                f"Availability: {m.availability * 100:.1f}%",
                f"Response Time: {m.average_response_time:.0f}ms",
                f"Cost: ${m.cost_per_token:.4f}/1K tokens",
            ],
            alternatives=[
                Alternative(
                    provider=c.provider,
                    model=c.model,
                    score=c.score,
                    reason=alternative_reason(c.metrics),
                )
                for c in ranked[1:1 + MAX_ALTERNATIVES]
            ],
        )
