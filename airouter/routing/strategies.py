"""
airouter - Routing Strategies

Named routing strategies and the registry that holds them.

Built-in strategies:
- cost-optimized: cheapest first, drop candidates over the cost limit
- speed-optimized: fastest first, drop candidates over the latency limit
- quality-optimized: best quality first, drop candidates under the quality floor
- balanced: equal weights, no rules (default)
- availability-first: keep only highly available candidates

Exactly one strategy is active per registry. Requests capture the
strategy object when they start, so switching does not affect requests
already in flight.
"""

from typing import Dict, List, Optional

from ..core.errors import UnknownStrategyError
from ..core.models import (
    RoutingRule,
    RoutingStrategy,
    RuleAction,
    StrategyWeights,
)
from ..observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_STRATEGY = "balanced"

# Availability floor kept by SWITCH_ON_LOW_AVAILABILITY when no threshold is set
LOW_AVAILABILITY_THRESHOLD = 0.8


def default_strategies() -> List[RoutingStrategy]:
    """Built-in strategies, in registration order."""
    return [
        RoutingStrategy(
            name="cost-optimized",
            description="Prioritize cost efficiency while maintaining quality",
            weights=StrategyWeights(cost=0.5, speed=0.2, quality=0.2, availability=0.1),
            rules=[
                RoutingRule(RuleAction.PREFER_CHEAPEST, condition="preferences.cost == low"),
                RoutingRule(RuleAction.FILTER_BY_COST, condition="constraints.max_cost is set"),
            ],
            priority=1,
        ),
        RoutingStrategy(
            name="speed-optimized",
            description="Prioritize fast response times",
            weights=StrategyWeights(cost=0.1, speed=0.6, quality=0.2, availability=0.1),
            rules=[
                RoutingRule(RuleAction.PREFER_FASTEST, condition="preferences.speed == fast"),
                RoutingRule(
                    RuleAction.FILTER_BY_RESPONSE_TIME,
                    condition="constraints.max_response_time is set",
                ),
            ],
            priority=2,
        ),
        RoutingStrategy(
            name="quality-optimized",
            description="Prioritize output quality and accuracy",
            weights=StrategyWeights(cost=0.1, speed=0.2, quality=0.6, availability=0.1),
            rules=[
                RoutingRule(RuleAction.PREFER_HIGHEST_QUALITY, condition="preferences.quality == excellent"),
                RoutingRule(RuleAction.FILTER_BY_QUALITY, condition="constraints.min_quality is set"),
            ],
            priority=3,
        ),
        RoutingStrategy(
            name="balanced",
            description="Balance between cost, speed, and quality",
            weights=StrategyWeights(cost=0.25, speed=0.25, quality=0.25, availability=0.25),
            rules=[],
            priority=4,
        ),
        RoutingStrategy(
            name="availability-first",
            description="Prioritize service availability and reliability",
            weights=StrategyWeights(cost=0.05, speed=0.15, quality=0.2, availability=0.6),
            rules=[
                RoutingRule(
                    RuleAction.SWITCH_ON_LOW_AVAILABILITY,
                    condition="availability < 0.8",
                    threshold=LOW_AVAILABILITY_THRESHOLD,
                ),
            ],
            priority=5,
        ),
    ]


class StrategyRegistry:
    """Named strategies plus the currently active one."""

    def __init__(
        self,
        strategies: Optional[List[RoutingStrategy]] = None,
        active: str = DEFAULT_STRATEGY,
    ):
        self._strategies: Dict[str, RoutingStrategy] = {}
        for strategy in default_strategies() if strategies is None else strategies:
            self.register(strategy)
        self._active = active

    def register(self, strategy: RoutingStrategy):
        """Add a strategy, replacing any existing one with the same name."""
        self._strategies[strategy.name] = strategy
        logger.info("Routing strategy registered", strategy_name=strategy.name)

    def get(self, name: str) -> RoutingStrategy:
        """Look up a strategy; raises UnknownStrategyError."""
        strategy = self._strategies.get(name)
        if strategy is None:
            raise UnknownStrategyError(name, available=self.names())
        return strategy

    def names(self) -> List[str]:
        return list(self._strategies.keys())

    def all(self) -> List[RoutingStrategy]:
        return list(self._strategies.values())

    @property
    def active_name(self) -> str:
        return self._active

    @property
    def active(self) -> RoutingStrategy:
        return self.get(self._active)

    def set_active(self, name: str):
        """Switch the active strategy; raises UnknownStrategyError."""
        self.get(name)
        previous = self._active
        self._active = name
        logger.info("Routing strategy changed", previous=previous, current=name)

    def clear(self):
        self._strategies.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._strategies

    def __len__(self) -> int:
        return len(self._strategies)
