"""
airouter - API Layer

REST endpoints for the routing core:
- Single, concurrent and batch routing
- Strategy listing, switching and registration
- Warmup and routing statistics
"""

from .models import (
    # Request models
    RouteRequest,
    ConcurrentRouteRequest,
    BatchRouteRequest,
    StrategyInput,
    ActiveStrategyInput,
    WarmupRequest,
    PreferencesInput,
    ConstraintsInput,
    # Response models
    RouteResponse,
    BatchRouteResponse,
    StrategyListResponse,
)
from .dependencies import get_router
from .routes import router as routing_router


__all__ = [
    "routing_router",
    "RouteRequest",
    "ConcurrentRouteRequest",
    "BatchRouteRequest",
    "StrategyInput",
    "ActiveStrategyInput",
    "WarmupRequest",
    "PreferencesInput",
    "ConstraintsInput",
    "RouteResponse",
    "BatchRouteResponse",
    "StrategyListResponse",
    "get_router",
]
