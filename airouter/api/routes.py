"""
airouter - Routing API

Endpoints exposing the router:

- POST /v1/route              single request
- POST /v1/route/concurrent   race across the top candidates
- POST /v1/route/batch        batch via distribution policy or batch mode
- GET  /v1/strategies         registered strategies
- PUT  /v1/strategies/active  switch the active strategy
- POST /v1/strategies         register a strategy
- POST /v1/warmup             health check providers and seed metrics
- GET  /v1/stats              routing statistics
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from ..routing.router import Router
from .dependencies import get_router, response_to_dict
from .models import (
    ActiveStrategyInput,
    BatchRouteRequest,
    BatchRouteResponse,
    ConcurrentRouteRequest,
    RouteRequest,
    RouteResponse,
    StrategyInput,
    StrategyListResponse,
    WarmupRequest,
)


router = APIRouter(prefix="/v1", tags=["routing"])


# ============================================================
# Routing Endpoints
# ============================================================

@router.post("/route", response_model=RouteResponse)
async def route(
    body: RouteRequest,
    router_instance: Router = Depends(get_router)
):
    """Route one request to the best available service."""
    response = await router_instance.route_request(body.to_internal())
    return response_to_dict(response)


@router.post("/route/concurrent", response_model=RouteResponse)
async def route_concurrent(
    body: ConcurrentRouteRequest,
    router_instance: Router = Depends(get_router)
):
    """Race one request across the top `concurrency` candidates."""
    response = await router_instance.route_concurrent_request(
        body.to_internal(),
        concurrency=body.concurrency,
    )
    return response_to_dict(response)


@router.post("/route/batch", response_model=BatchRouteResponse)
async def route_batch(
    body: BatchRouteRequest,
    router_instance: Router = Depends(get_router)
):
    """
    Route a batch.

    **distribution** (`round-robin`, `weighted`, `least-connections`)
    spreads requests without per-request scoring. Without it, every
    request is routed normally in the given **mode**.
    """
    requests = [r.to_internal() for r in body.requests]

    if body.distribution is not None:
        responses = await router_instance.distribute_load(requests, body.distribution)
    else:
        responses = await router_instance.process_batch(requests, body.mode)

    return {
        "responses": [response_to_dict(r) for r in responses],
        "total": len(responses),
        "successful": sum(1 for r in responses if r.success),
    }


# ============================================================
# Strategy Endpoints
# ============================================================

@router.get("/strategies", response_model=StrategyListResponse)
async def list_strategies(router_instance: Router = Depends(get_router)):
    return {
        "active": router_instance.strategies.active_name,
        "strategies": [s.to_dict() for s in router_instance.strategies.all()],
    }


@router.put("/strategies/active")
async def set_active_strategy(
    body: ActiveStrategyInput,
    router_instance: Router = Depends(get_router)
) -> Dict[str, Any]:
    router_instance.set_routing_strategy(body.name)
    return {"active": body.name}


@router.post("/strategies", status_code=201)
async def add_strategy(
    body: StrategyInput,
    router_instance: Router = Depends(get_router)
) -> Dict[str, Any]:
    strategy = body.to_internal()
    router_instance.add_routing_strategy(strategy)
    return strategy.to_dict()


# ============================================================
# Operations Endpoints
# ============================================================

@router.post("/warmup")
async def warmup(
    body: Optional[WarmupRequest] = None,
    router_instance: Router = Depends(get_router)
) -> Dict[str, Any]:
    providers = body.providers if body else None
    await router_instance.warmup_services(providers)
    stats = router_instance.get_routing_stats()
    return {
        "status": "completed",
        "availability": {
            key: metrics["availability"] for key, metrics in stats["service_metrics"].items()
        },
    }


@router.get("/stats")
async def routing_stats(router_instance: Router = Depends(get_router)) -> Dict[str, Any]:
    return router_instance.get_routing_stats()
