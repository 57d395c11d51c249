"""
airouter - Scoring Engine

Scalar desirability score for a candidate service:

    score = availability * W_availability
          + speed_score  * W_speed
          + cost_score   * W_cost
          + quality      * W_quality

speed_score = max(0, 1 - avg_response_time / 10000)  (10s ceiling)
cost_score  = max(0, 1 - cost_per_token / 0.1)       ($0.1 ceiling)

Matching soft preferences add a flat bonus of 0.2 x the matching
component. Every function here is pure.
"""

from ..core.models import (
    CostPreference,
    QualityPreference,
    RoutingRequest,
    RoutingStrategy,
    ServiceMetrics,
    SpeedPreference,
)

RESPONSE_TIME_CEILING_MS = 10000.0
COST_CEILING = 0.1
PREFERENCE_BONUS = 0.2


def speed_score(metrics: ServiceMetrics) -> float:
    return max(0.0, 1 - metrics.average_response_time / RESPONSE_TIME_CEILING_MS)


def cost_score(metrics: ServiceMetrics) -> float:
    return max(0.0, 1 - metrics.cost_per_token / COST_CEILING)


def score(metrics: ServiceMetrics, request: RoutingRequest, strategy: RoutingStrategy) -> float:
    """
    Score a candidate under a strategy.

    Args:
        metrics: Candidate metrics snapshot
        request: Request whose preferences may add bonuses
        strategy: Strategy providing the weight vector

    Returns:
        Score (higher is better); not bounded to [0, 1] once bonuses apply
    """
    weights = strategy.weights
    speed = speed_score(metrics)
    cost = cost_score(metrics)
    quality = metrics.quality_score

    total = (
        metrics.availability * weights.availability
        + speed * weights.speed
        + cost * weights.cost
        + quality * weights.quality
    )

    prefs = request.preferences
    if prefs:
        if prefs.cost == CostPreference.LOW:
            total += PREFERENCE_BONUS * cost
        if prefs.speed == SpeedPreference.FAST:
            total += PREFERENCE_BONUS * speed
        if prefs.quality == QualityPreference.EXCELLENT:
            total += PREFERENCE_BONUS * quality

    return total


def race_score(candidate_score: float, response_time_ms: float) -> float:
    """Rank successful race outcomes: 0.7 x score + 0.3 x speed."""
    return 0.7 * candidate_score + 0.3 * max(0.0, 1 - response_time_ms / RESPONSE_TIME_CEILING_MS)


def cost_efficiency(score_value: float, cost: float) -> float:
    """(score / 10) per unit of cost; 0.0 when the cost is unknown or free."""
    if cost <= 0:
        return 0.0
    return (score_value / 10) / cost


def alternative_reason(metrics: ServiceMetrics) -> str:
    """Short label explaining why a runner-up is worth considering."""
    if metrics.availability >= 0.9:
        return "High availability"
    if metrics.average_response_time < 2000:
        return "Fast response"
    if metrics.cost_per_token < 0.005:
        return "Low cost"
    if metrics.quality_score >= 0.9:
        return "High quality"
    return "Balanced choice"


class ScoringEngine:
    """Object wrapper so the selector can take a swappable scorer."""

    def score(self, metrics: ServiceMetrics, request: RoutingRequest, strategy: RoutingStrategy) -> float:
        return score(metrics, request, strategy)
