"""
airouter - API Layer Tests

Comprehensive tests for:
- Request/Response models
- Routing endpoints
- Strategy management endpoints
- Warmup, stats, health and metrics endpoints
- Error responses
"""

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from airouter.api.models import (
    BatchRouteRequest,
    ConcurrentRouteRequest,
    RouteRequest,
    StrategyInput,
)
from airouter.core.models import BatchMode, CostPreference, RuleAction
from airouter.server import create_app

from conftest import ALPHA, BETA


@pytest.fixture
def client(make_router):
    """Client over a stub-backed router; lifespan is not run."""
    return TestClient(create_app(make_router(ALPHA, BETA)))


# ============================================================
# Test API Models
# ============================================================

class TestRouteRequestModel:
    """Tests for RouteRequest and friends."""

    def test_minimal_request(self):
        request = RouteRequest(prompt="Hi")

        internal = request.to_internal()
        assert internal.prompt == "Hi"
        assert internal.preferences is None
        assert internal.params.temperature is None

    def test_full_conversion(self):
        request = RouteRequest(
            prompt="Hi",
            context=["earlier turn"],
            temperature=0.7,
            max_tokens=100,
            preferences={"cost": "low", "model": "beta-small"},
            constraints={"blocked_providers": ["alpha"], "max_response_time": 1500},
            request_id="req_abc",
        )

        internal = request.to_internal()
        assert internal.context == ["earlier turn"]
        assert internal.params.max_tokens == 100
        assert internal.preferences.cost == CostPreference.LOW
        assert internal.preferred_model == "beta-small"
        assert internal.blocked_providers == ["alpha"]
        assert internal.constraints.max_response_time == 1500
        assert internal.request_id == "req_abc"

    @pytest.mark.parametrize("fields", [
        {"prompt": ""},
        {"prompt": "x", "temperature": 3},
        {"prompt": "x", "max_tokens": 0},
        {"prompt": "x", "top_p": 1.1},
        {"prompt": "x", "constraints": {"min_quality": 2}},
        {"prompt": "x", "preferences": {"speed": "ludicrous"}},
    ])
    def test_invalid_fields(self, fields):
        with pytest.raises(ValidationError):
            RouteRequest(**fields)

    def test_concurrency_limits(self):
        assert ConcurrentRouteRequest(prompt="x").concurrency == 2
        with pytest.raises(ValidationError):
            ConcurrentRouteRequest(prompt="x", concurrency=0)
        with pytest.raises(ValidationError):
            ConcurrentRouteRequest(prompt="x", concurrency=11)

    def test_batch_defaults(self):
        batch = BatchRouteRequest(requests=[{"prompt": "a"}])

        assert batch.distribution is None
        assert batch.mode == BatchMode.CONCURRENT

    def test_batch_must_not_be_empty(self):
        with pytest.raises(ValidationError):
            BatchRouteRequest(requests=[])

    def test_strategy_input(self):
        strategy = StrategyInput(
            name="cheap_and_quick",
            weights={"cost": 0.6, "speed": 0.4, "quality": 0, "availability": 0},
            rules=[{"action": "prefer_cheapest"}],
        ).to_internal()

        assert strategy.weights.cost == 0.6
        assert strategy.rules[0].action == RuleAction.PREFER_CHEAPEST

    def test_strategy_name_pattern(self):
        with pytest.raises(ValidationError):
            StrategyInput(name="has spaces")


# ============================================================
# Routing Endpoint Tests
# ============================================================

class TestRoutingEndpoints:
    """Tests for /v1/route*."""

    def test_route(self, client):
        response = client.post("/v1/route", json={"prompt": "hello"})

        assert response.status_code == 200
        data = response.json()
        assert data["provider"] == "beta"
        assert data["content"] == "answer from beta"
        assert data["metadata"]["routing_decision"]["reasoning"][0] == "Selected based on balanced strategy"
        assert data["metadata"]["cache_hit"] is False

    def test_route_cached(self, client):
        client.post("/v1/route", json={"prompt": "same"})
        response = client.post("/v1/route", json={"prompt": "same"})

        assert response.json()["metadata"]["cache_hit"] is True

    def test_empty_prompt_rejected(self, client):
        response = client.post("/v1/route", json={"prompt": ""})

        assert response.status_code == 422

    def test_request_id_header(self, client):
        response = client.post(
            "/v1/route",
            json={"prompt": "hello"},
            headers={"X-Request-Id": "req_from_client"},
        )

        assert response.headers["x-request-id"] == "req_from_client"
        assert len(response.headers["x-trace-id"]) == 32

    def test_route_concurrent(self, client):
        response = client.post("/v1/route/concurrent", json={"prompt": "race", "concurrency": 2})

        assert response.status_code == 200
        results = response.json()["metadata"]["concurrent_results"]
        assert results["total"] == 2
        assert results["selected"] == "beta:beta-small"

    def test_batch_with_distribution(self, client):
        response = client.post("/v1/route/batch", json={
            "requests": [{"prompt": "a"}, {"prompt": "b"}, {"prompt": "c"}],
            "distribution": "round-robin",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["successful"] == 3
        assert [r["provider"] for r in data["responses"]] == ["alpha", "beta", "alpha"]

    def test_batch_with_mode(self, client):
        response = client.post("/v1/route/batch", json={
            "requests": [{"prompt": "a"}, {"prompt": "b"}],
            "mode": "sequential",
        })

        data = response.json()
        assert data["successful"] == 2
        assert {r["provider"] for r in data["responses"]} == {"beta"}

    def test_all_fallbacks_failed(self, make_router, stubs):
        stubs["beta"].fail = True
        client = TestClient(create_app(make_router(BETA)))

        response = client.post("/v1/route", json={"prompt": "hello"})

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "all_fallbacks_failed"
        assert error["type"] == "infra_error"
        assert error["fallback_attempted"] is True
        assert response.headers["x-error-code"] == "all_fallbacks_failed"
        assert response.headers["x-provider"] == "beta"

    def test_no_service_available(self, client):
        response = client.post("/v1/route", json={
            "prompt": "hello",
            "constraints": {"allowed_providers": ["nobody"]},
        })

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "no_service_available"
        assert response.headers["x-error-type"] == "semantic_error"


# ============================================================
# Strategy Endpoint Tests
# ============================================================

class TestStrategyEndpoints:
    """Tests for /v1/strategies*."""

    def test_list(self, client):
        response = client.get("/v1/strategies")

        data = response.json()
        assert data["active"] == "balanced"
        assert [s["name"] for s in data["strategies"]][0] == "cost-optimized"

    def test_switch(self, client):
        response = client.put("/v1/strategies/active", json={"name": "quality-optimized"})

        assert response.status_code == 200
        assert response.json() == {"active": "quality-optimized"}
        assert client.post("/v1/route", json={"prompt": "hi"}).json()["provider"] == "alpha"

    def test_unknown_strategy(self, client):
        response = client.put("/v1/strategies/active", json={"name": "nope"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "unknown_strategy"
        assert error["param"] == "strategy"
        assert "balanced" in error["details"]["available"]

    def test_register(self, client):
        response = client.post("/v1/strategies", json={
            "name": "quality-only",
            "weights": {"cost": 0, "speed": 0, "quality": 1, "availability": 0},
        })

        assert response.status_code == 201
        assert response.json()["name"] == "quality-only"
        names = [s["name"] for s in client.get("/v1/strategies").json()["strategies"]]
        assert "quality-only" in names


# ============================================================
# Operations Endpoint Tests
# ============================================================

class TestOperationsEndpoints:
    """Tests for warmup, stats, health and metrics."""

    def test_warmup(self, make_router, stubs):
        stubs["alpha"].health_status = "degraded"
        client = TestClient(create_app(make_router(ALPHA, BETA)))

        response = client.post("/v1/warmup")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["availability"] == {"alpha:alpha-large": 0.5, "beta:beta-small": 1.0}

    def test_warmup_subset(self, client):
        response = client.post("/v1/warmup", json={"providers": ["beta"]})

        assert response.json()["availability"]["beta:beta-small"] == 1.0

    def test_stats(self, client):
        client.post("/v1/route", json={"prompt": "hello"})

        stats = client.get("/v1/stats").json()

        assert stats["current_strategy"] == "balanced"
        assert stats["total_requests"] == 1
        assert stats["available_providers"] == ["alpha", "beta"]

    def test_health(self, client):
        response = client.get("/health")

        data = response.json()
        assert data["status"] == "healthy"
        assert data["strategy"] == "balanced"
        assert data["services"]["beta:beta-small"] == 1.0

    def test_health_degraded(self, make_router):
        router = make_router(ALPHA, BETA)
        router.store.seed_provider("alpha", 0.1)
        router.store.seed_provider("beta", 0.1)

        data = TestClient(create_app(router)).get("/health").json()

        assert data["status"] == "degraded"

    def test_metrics(self, client):
        client.post("/v1/route", json={"prompt": "hello"})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "airouter_requests_total" in response.text
        assert 'provider="beta"' in response.text

    def test_router_not_initialized(self):
        client = TestClient(create_app())

        response = client.get("/v1/stats")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "service_unavailable"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
