"""
airouter - Pytest Configuration

Configures:
- Integration test markers (skip by default)
- Smoke test handling (skip with SKIP_SMOKE=1)
- Provider catalogs, stub backends and routers for unit tests
"""

import os
import random
from typing import Optional

import pytest
from prometheus_client import CollectorRegistry

from airouter.backends import BackendRegistry, StubBackend
from airouter.core.config import ModelConfig, ProviderConfig, RouterConfig
from airouter.observability.logging import LogContext, setup_logging
from airouter.observability.metrics import RoutingMetrics
from airouter.routing.router import Router


# ============================================================
# Environment Configuration
# ============================================================

def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


RUN_INTEGRATION = _is_truthy(os.getenv("RUN_INTEGRATION"))
SKIP_SMOKE = _is_truthy(os.getenv("SKIP_SMOKE"))


# ============================================================
# Pytest Markers
# ============================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires RUN_INTEGRATION=1)"
    )
    config.addinivalue_line(
        "markers",
        "smoke: mark test as smoke test (skip with SKIP_SMOKE=1)"
    )


def pytest_collection_modifyitems(config, items):
    """
    Modify test collection to handle integration and smoke tests.

    - Integration tests: Skip unless RUN_INTEGRATION=1
    - Smoke tests: Skip if SKIP_SMOKE=1
    """
    skip_integration = pytest.mark.skip(
        reason="Integration test - set RUN_INTEGRATION=1 to run"
    )
    skip_smoke = pytest.mark.skip(
        reason="Smoke test skipped - SKIP_SMOKE=1"
    )

    for item in items:
        if "integration" in item.keywords and not RUN_INTEGRATION:
            item.add_marker(skip_integration)

        if "smoke" in item.keywords and SKIP_SMOKE:
            item.add_marker(skip_smoke)


@pytest.fixture(autouse=True)
def quiet_logging():
    """Plain-text logging at WARNING so test output stays readable."""
    setup_logging(level="WARNING", json_output=False)
    yield
    LogContext.clear()


# ============================================================
# Provider Catalogs
# ============================================================

def make_config(*providers: ProviderConfig, **overrides) -> RouterConfig:
    """RouterConfig with the given providers and fast background intervals."""
    options = {
        "request_timeout": 5.0,
        "metrics_refresh_interval": 60.0,
        "cache_cleanup_interval": 60.0,
        "max_concurrency": 5,
    }
    options.update(overrides)
    return RouterConfig(providers=list(providers), **options)


# alpha: expensive, slow, excellent. Scores 0.825 under "balanced".
ALPHA = ProviderConfig("alpha", models=[ModelConfig("alpha-large", 0.02, 0.02, "excellent", "slow")])

# beta: cheap, fast, good. Scores 0.9275 under "balanced" and wins by default.
BETA = ProviderConfig("beta", models=[ModelConfig("beta-small", 0.001, 0.001, "good", "fast")])

# gamma: mid-priced, medium speed, good. Scores 0.875 under "balanced".
GAMMA = ProviderConfig("gamma", models=[ModelConfig("gamma-base", 0.01, 0.01, "good", "medium")])


@pytest.fixture
def metrics_registry():
    """Fresh Prometheus registry per test."""
    return CollectorRegistry()


@pytest.fixture
def routing_metrics(metrics_registry):
    return RoutingMetrics(registry=metrics_registry)


@pytest.fixture
def stubs():
    """One stub backend per provider with distinguishable content."""
    return {
        "alpha": StubBackend("alpha", content="answer from alpha"),
        "beta": StubBackend("beta", content="answer from beta"),
        "gamma": StubBackend("gamma", content="answer from gamma"),
    }


@pytest.fixture
def make_router(stubs, routing_metrics):
    """
    Factory for routers over the stub backends.

    Usage:
        router = make_router(ALPHA, BETA, fallback_enabled=False)
    """
    def factory(*providers: ProviderConfig, seed: int = 7, **overrides) -> Router:
        providers = providers or (ALPHA, BETA)
        config = make_config(*providers, **overrides)
        backends = BackendRegistry(stubs[p.id] for p in providers if p.id in stubs)
        return Router(config, backends, metrics=routing_metrics, rng=random.Random(seed))

    return factory
