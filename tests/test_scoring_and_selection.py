"""
airouter - Scoring & Selection Tests

Tests for candidate scoring and selection:
- Weighted scoring and preference bonuses
- Hard constraint filtering
- Rule pipeline (sorts and filters)
- Strategy registry
- Routing decisions and alternatives
"""

import pytest

from airouter.core.errors import NoServiceAvailableError, UnknownStrategyError
from airouter.core.models import (
    CostPreference,
    QualityPreference,
    RoutingRequest,
    RoutingRule,
    RoutingStrategy,
    RuleAction,
    SamplingParams,
    ServiceMetrics,
    SpeedPreference,
    StrategyWeights,
    UserConstraints,
    UserPreferences,
)
from airouter.routing.metrics_store import ServiceMetricsStore
from airouter.routing.scoring import (
    cost_efficiency,
    cost_score,
    race_score,
    score,
    speed_score,
)
from airouter.routing.selector import (
    CandidateSelector,
    apply_rule,
    estimated_cost,
    passes_constraints,
)
from airouter.routing.strategies import StrategyRegistry, default_strategies

from conftest import ALPHA, BETA, GAMMA


def _store(*metrics: ServiceMetrics) -> ServiceMetricsStore:
    store = ServiceMetricsStore()
    for m in metrics:
        store.add(m)
    return store


@pytest.fixture
def registry():
    return StrategyRegistry()


@pytest.fixture
def catalog_selector():
    """Selector over the alpha/beta/gamma catalog."""
    return CandidateSelector(ServiceMetricsStore([ALPHA, BETA, GAMMA]))


# ============================================================
# Scoring Tests
# ============================================================

class TestScoring:
    """Tests for the scoring formula."""

    def test_balanced_scores(self, registry):
        """Balanced weights give a quarter to each component."""
        store = ServiceMetricsStore([ALPHA, BETA, GAMMA])
        request = RoutingRequest(prompt="hi")
        balanced = registry.get("balanced")

        assert score(store.get(("alpha", "alpha-large")), request, balanced) == pytest.approx(0.825)
        assert score(store.get(("beta", "beta-small")), request, balanced) == pytest.approx(0.9275)
        assert score(store.get(("gamma", "gamma-base")), request, balanced) == pytest.approx(0.875)

    def test_component_floors(self):
        """Speed and cost components never go negative."""
        slow = ServiceMetrics("p", "m", average_response_time=25000, cost_per_token=0.5)

        assert speed_score(slow) == 0.0
        assert cost_score(slow) == 0.0

    def test_preference_bonuses(self, registry):
        """Matching preferences add 0.2 x the matching component."""
        metrics = ServiceMetrics("p", "m", average_response_time=1000, cost_per_token=0.01, quality_score=0.9)
        balanced = registry.get("balanced")
        base = score(metrics, RoutingRequest(prompt="x"), balanced)

        cheap = RoutingRequest(prompt="x", preferences=UserPreferences(cost=CostPreference.LOW))
        fast = RoutingRequest(prompt="x", preferences=UserPreferences(speed=SpeedPreference.FAST))
        best = RoutingRequest(prompt="x", preferences=UserPreferences(quality=QualityPreference.EXCELLENT))

        assert score(metrics, cheap, balanced) == pytest.approx(base + 0.2 * 0.9)
        assert score(metrics, fast, balanced) == pytest.approx(base + 0.2 * 0.9)
        assert score(metrics, best, balanced) == pytest.approx(base + 0.2 * 0.9)

    def test_non_matching_preferences_add_nothing(self, registry):
        """Only low cost, fast speed and excellent quality earn a bonus."""
        metrics = ServiceMetrics("p", "m")
        balanced = registry.get("balanced")
        request = RoutingRequest(
            prompt="x",
            preferences=UserPreferences(
                cost=CostPreference.HIGH,
                speed=SpeedPreference.SLOW,
                quality=QualityPreference.BASIC,
            ),
        )

        assert score(metrics, request, balanced) == score(metrics, RoutingRequest(prompt="x"), balanced)

    def test_race_score(self):
        """Race ranking blends candidate score with observed speed."""
        assert race_score(1.0, 0.0) == pytest.approx(1.0)
        assert race_score(0.5, 5000) == pytest.approx(0.35 + 0.15)
        assert race_score(0.5, 20000) == pytest.approx(0.35)

    def test_cost_efficiency(self):
        """Efficiency is (score / 10) per unit cost, 0 without a cost."""
        assert cost_efficiency(0.8, 0.0) == 0.0
        assert cost_efficiency(0.8, -1.0) == 0.0
        assert cost_efficiency(0.8, 0.04) == pytest.approx(2.0)


# ============================================================
# Selection Scenario Tests
# ============================================================

class TestStrategyScenario:
    """Cheap fast provider vs. expensive high quality provider."""

    @pytest.fixture
    def selector(self):
        return CandidateSelector(_store(
            ServiceMetrics("a", "a-1", cost_per_token=0.01, quality_score=0.9, average_response_time=5000),
            ServiceMetrics("b", "b-1", cost_per_token=0.001, quality_score=0.6, average_response_time=800),
        ))

    def test_cost_optimized_selects_cheap_provider(self, selector, registry):
        """cost-optimized picks B."""
        decision = selector.select(RoutingRequest(prompt="x"), registry.get("cost-optimized"))

        assert decision.provider == "b"
        assert decision.score == pytest.approx(0.899)
        assert decision.alternatives[0].provider == "a"
        assert decision.alternatives[0].score == pytest.approx(0.83)

    def test_quality_optimized_selects_quality_provider(self, selector, registry):
        """quality-optimized picks A."""
        decision = selector.select(RoutingRequest(prompt="x"), registry.get("quality-optimized"))

        assert decision.provider == "a"
        assert decision.score == pytest.approx(0.83)
        assert decision.alternatives[0].score == pytest.approx(0.743)

    def test_selection_is_deterministic(self, selector, registry):
        """Same metrics and request give the same decision."""
        request = RoutingRequest(prompt="x")
        strategy = registry.get("balanced")

        first = selector.select(request, strategy)
        second = selector.select(request, strategy)

        assert first == second


# ============================================================
# Filtering Tests
# ============================================================

class TestConstraintFiltering:
    """Tests for the hard filter shared by every strategy."""

    def test_low_availability_excluded(self):
        """Availability below 0.3 is never a candidate."""
        request = RoutingRequest(prompt="x")

        assert not passes_constraints(ServiceMetrics("p", "m", availability=0.29), request)
        assert passes_constraints(ServiceMetrics("p", "m", availability=0.3), request)

    def test_max_response_time(self, catalog_selector, registry):
        """Only beta answers within a second."""
        request = RoutingRequest(prompt="x", constraints=UserConstraints(max_response_time=1000))
        ranked = catalog_selector.rank(request, registry.get("balanced"))

        assert [c.provider for c in ranked] == ["beta"]

    def test_max_cost_uses_max_tokens(self, catalog_selector, registry):
        """Cost limit compares cost_per_token x max_tokens."""
        request = RoutingRequest(
            prompt="x",
            params=SamplingParams(max_tokens=100),
            constraints=UserConstraints(max_cost=1.0),
        )
        ranked = catalog_selector.rank(request, registry.get("balanced"))

        # beta 0.1, gamma 1.0, alpha 2.0
        assert {c.provider for c in ranked} == {"beta", "gamma"}

    def test_max_cost_default_token_estimate(self):
        """Without max_tokens the estimate uses 1000 tokens."""
        metrics = ServiceMetrics("p", "m", cost_per_token=0.002)

        assert estimated_cost(metrics, RoutingRequest(prompt="x")) == pytest.approx(2.0)

    def test_min_quality(self, catalog_selector, registry):
        request = RoutingRequest(prompt="x", constraints=UserConstraints(min_quality=0.9))
        ranked = catalog_selector.rank(request, registry.get("balanced"))

        assert [c.provider for c in ranked] == ["alpha"]

    def test_allowed_providers(self, catalog_selector, registry):
        request = RoutingRequest(prompt="x", constraints=UserConstraints(allowed_providers=["gamma"]))
        decision = catalog_selector.select(request, registry.get("balanced"))

        assert decision.provider == "gamma"

    def test_blocked_providers(self, catalog_selector, registry):
        """Blocking the winner promotes the runner-up."""
        request = RoutingRequest(prompt="x", constraints=UserConstraints(blocked_providers=["beta"]))
        decision = catalog_selector.select(request, registry.get("balanced"))

        assert decision.provider == "gamma"
        assert decision.score == pytest.approx(0.875)

    def test_nothing_left_raises(self, catalog_selector, registry):
        """No survivor raises NoServiceAvailableError."""
        request = RoutingRequest(
            prompt="x",
            request_id="req_1",
            constraints=UserConstraints(allowed_providers=["nobody"]),
        )

        with pytest.raises(NoServiceAvailableError) as exc_info:
            catalog_selector.select(request, registry.get("balanced"))

        assert exc_info.value.error.code == "no_service_available"
        assert exc_info.value.error.request_id == "req_1"


# ============================================================
# Rule Tests
# ============================================================

class TestRules:
    """Tests for each rule kind."""

    @pytest.fixture
    def services(self):
        return [
            ServiceMetrics("slow", "m", average_response_time=5000, cost_per_token=0.01, quality_score=1.0, availability=0.9),
            ServiceMetrics("cheap", "m", average_response_time=2000, cost_per_token=0.001, quality_score=0.6, availability=0.8),
            ServiceMetrics("fast", "m", average_response_time=500, cost_per_token=0.005, quality_score=0.8, availability=0.5),
        ]

    def test_prefer_cheapest(self, services):
        result = apply_rule(RoutingRule(RuleAction.PREFER_CHEAPEST), services, RoutingRequest(prompt="x"))
        assert [m.provider for m in result] == ["cheap", "fast", "slow"]

    def test_prefer_fastest(self, services):
        result = apply_rule(RoutingRule(RuleAction.PREFER_FASTEST), services, RoutingRequest(prompt="x"))
        assert [m.provider for m in result] == ["fast", "cheap", "slow"]

    def test_prefer_highest_quality(self, services):
        result = apply_rule(RoutingRule(RuleAction.PREFER_HIGHEST_QUALITY), services, RoutingRequest(prompt="x"))
        assert [m.provider for m in result] == ["slow", "fast", "cheap"]

    def test_filters_without_constraint_keep_everything(self, services):
        """Filter rules are no-ops when the matching constraint is unset."""
        request = RoutingRequest(prompt="x")
        for action in (RuleAction.FILTER_BY_COST, RuleAction.FILTER_BY_RESPONSE_TIME, RuleAction.FILTER_BY_QUALITY):
            assert apply_rule(RoutingRule(action), services, request) == services

    def test_filter_by_response_time(self, services):
        request = RoutingRequest(prompt="x", constraints=UserConstraints(max_response_time=2000))
        result = apply_rule(RoutingRule(RuleAction.FILTER_BY_RESPONSE_TIME), services, request)
        assert [m.provider for m in result] == ["cheap", "fast"]

    def test_switch_on_low_availability(self, services):
        """Keeps only availability strictly above the threshold."""
        result = apply_rule(
            RoutingRule(RuleAction.SWITCH_ON_LOW_AVAILABILITY, threshold=0.8),
            services,
            RoutingRequest(prompt="x"),
        )
        assert [m.provider for m in result] == ["slow"]

    def test_availability_first_can_empty_the_pool(self, registry):
        """Rules may remove every candidate."""
        selector = CandidateSelector(_store(ServiceMetrics("p", "m", availability=0.6)))

        with pytest.raises(NoServiceAvailableError):
            selector.select(RoutingRequest(prompt="x"), registry.get("availability-first"))

    def test_ties_keep_rule_order(self):
        """Equal scores keep the order produced by the rules."""
        flat = RoutingStrategy(
            name="flat",
            weights=StrategyWeights(cost=0, speed=0, quality=0, availability=0),
            rules=[RoutingRule(RuleAction.PREFER_CHEAPEST)],
        )
        selector = CandidateSelector(_store(
            ServiceMetrics("pricey", "m", cost_per_token=0.05),
            ServiceMetrics("mid", "m", cost_per_token=0.01),
            ServiceMetrics("budget", "m", cost_per_token=0.001),
        ))

        ranked = selector.rank(RoutingRequest(prompt="x"), flat)

        assert [c.provider for c in ranked] == ["budget", "mid", "pricey"]
        assert all(c.score == 0 for c in ranked)

    def test_ties_without_rules_keep_registration_order(self, registry):
        selector = CandidateSelector(_store(
            ServiceMetrics("second", "m"),
            ServiceMetrics("first", "m"),
        ))

        decision = selector.select(RoutingRequest(prompt="x"), registry.get("balanced"))

        assert decision.provider == "second"


# ============================================================
# Decision Tests
# ============================================================

class TestRoutingDecision:
    """Tests for decision reasoning and alternatives."""

    def test_reasoning_lines(self, catalog_selector, registry):
        decision = catalog_selector.select(RoutingRequest(prompt="x"), registry.get("balanced"))

        assert decision.provider == "beta"
        assert decision.model == "beta-small"
        assert decision.reasoning[0] == "Selected based on balanced strategy"
        assert decision.reasoning[1].startswith("Score: 0.92")
        assert "Availability: 100.0%" in decision.reasoning
        assert "Response Time: 800ms" in decision.reasoning

    def test_at_most_two_alternatives(self, catalog_selector, registry):
        decision = catalog_selector.select(RoutingRequest(prompt="x"), registry.get("balanced"))

        assert [a.provider for a in decision.alternatives] == ["gamma", "alpha"]
        assert decision.alternatives[0].reason == "High availability"

    def test_alternative_reasons(self, registry):
        selector = CandidateSelector(_store(
            ServiceMetrics("top", "m", availability=1.0),
            ServiceMetrics("quick", "m", availability=0.5, average_response_time=900),
            ServiceMetrics("other", "m", availability=0.4, average_response_time=4000, cost_per_token=0.02),
        ))

        decision = selector.select(RoutingRequest(prompt="x"), registry.get("balanced"))
        reasons = {a.provider: a.reason for a in decision.alternatives}

        assert reasons == {"quick": "Fast response", "other": "Balanced choice"}


# ============================================================
# Strategy Registry Tests
# ============================================================

class TestStrategyRegistry:
    """Tests for StrategyRegistry."""

    def test_builtin_strategies(self, registry):
        assert registry.names() == [
            "cost-optimized",
            "speed-optimized",
            "quality-optimized",
            "balanced",
            "availability-first",
        ]
        assert registry.active_name == "balanced"

    def test_builtin_weights_sum_to_one(self):
        for strategy in default_strategies():
            w = strategy.weights
            assert w.cost + w.speed + w.quality + w.availability == pytest.approx(1.0)

    def test_unknown_strategy(self, registry):
        with pytest.raises(UnknownStrategyError) as exc_info:
            registry.set_active("does-not-exist")

        assert exc_info.value.status_code == 400
        assert exc_info.value.error.param == "strategy"
        assert registry.active_name == "balanced"

    def test_register_and_activate(self, registry):
        custom = RoutingStrategy(name="custom", weights=StrategyWeights(cost=1, speed=0, quality=0, availability=0))
        registry.register(custom)
        registry.set_active("custom")

        assert registry.active is custom
        assert "custom" in registry

    def test_register_replaces_same_name(self, registry):
        replacement = RoutingStrategy(name="balanced", description="replaced")
        registry.register(replacement)

        assert registry.get("balanced").description == "replaced"
        assert len(registry) == 5

    def test_to_dict(self, registry):
        data = registry.get("cost-optimized").to_dict()

        assert data["weights"]["cost"] == 0.5
        assert data["rules"][0]["action"] == "prefer_cheapest"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
