"""
airouter - Main API Server

FastAPI application exposing the routing core.

Configuration comes from AIROUTER_* environment variables (see
core.config). With AIROUTER_USE_STUB_BACKENDS=true every enabled provider
is served by a deterministic stub backend, which is the local and smoke
test mode; otherwise backend clients are registered by the embedding
application through create_app(router=...).

Features:
- Single, concurrent and batch routing endpoints
- Runtime strategy management
- Warmup and routing statistics
- Full observability (metrics, tracing, logging)
"""

import os
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import dependencies as api_deps
from .api.routes import router as routing_router
from .backends import BackendRegistry, StubBackend
from .core.config import RouterConfig, use_stub_backends
from .core.errors import ErrorDetails, ErrorType, InfraError, RouterError
from .observability import (
    ObservabilityMiddleware,
    get_logger,
    get_metrics,
    metrics_endpoint,
    setup_observability,
)
from .routing.router import Router

VERSION = "1.0.0"


def build_router(config: Optional[RouterConfig] = None) -> Router:
    """Router wired from environment configuration."""
    logger = get_logger("airouter.server")
    config = config or RouterConfig.from_env()

    backends = BackendRegistry()
    if use_stub_backends():
        for provider in config.enabled_providers():
            backends.register(StubBackend(provider.id))
        logger.info("Stub backends registered", providers=backends.provider_ids())
    else:
        logger.warning(
            "No backend clients registered. Set AIROUTER_USE_STUB_BACKENDS=true "
            "or pass a configured Router to create_app()"
        )

    return Router(config, backends, metrics=get_metrics())


def create_app(router: Optional[Router] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        router: Pre-built router; one is built from the environment at
            startup when omitted. A router passed in is stopped but not
            closed at shutdown, since its owner manages the backends.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifespan - startup and shutdown."""
        observability = setup_observability(
            service_name="airouter",
            service_version=VERSION,
            otlp_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
        logger = get_logger("airouter.server")

        owned = app.state.router is None
        if owned:
            app.state.router = build_router()
        router_instance: Router = app.state.router

        await router_instance.start()
        if router_instance.backends.provider_ids():
            await router_instance.warmup_services(router_instance.backends.provider_ids())

        logger.info(
            "airouter server ready",
            strategy=router_instance.strategies.active_name,
            providers=router_instance.backends.provider_ids(),
        )

        yield

        if owned:
            await router_instance.close()
        else:
            await router_instance.stop()

        if "tracing" in observability:
            observability["tracing"].shutdown()

        logger.info("airouter server stopped")

    app = FastAPI(
        title="airouter",
        description="AI request routing: strategy-based selection, fallback, racing and load distribution",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json"
    )
    app.state.router = router

    # First added = outermost
    app.add_middleware(ObservabilityMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routing_router)

    # ============================================================
    # Core Endpoints (not in routes)
    # ============================================================

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        router_instance = api_deps.get_router(request)
        stats = router_instance.get_routing_stats()

        availability = {
            key: metrics["availability"] for key, metrics in stats["service_metrics"].items()
        }
        any_available = any(a >= 0.3 for a in availability.values())

        return {
            "status": "healthy" if any_available else "degraded",
            "version": VERSION,
            "strategy": stats["current_strategy"],
            "services": availability,
        }

    @app.get("/metrics")
    async def prometheus_metrics(request: Request):
        """Prometheus metrics endpoint."""
        router_instance = getattr(request.app.state, "router", None)
        registry = router_instance.metrics.registry if router_instance and router_instance.metrics else None
        return metrics_endpoint(registry)

    # ============================================================
    # Error handlers
    # ============================================================

    @app.exception_handler(RouterError)
    async def router_exception_handler(request: Request, exc: RouterError):
        """Handle all canonical airouter errors."""
        request_id = exc.error.request_id or request.headers.get("x-request-id", "")
        headers = {
            "X-Request-Id": request_id,
            "X-Error-Type": exc.error.type.value,
            "X-Error-Code": exc.error.code,
        }
        if exc.error.provider:
            headers["X-Provider"] = exc.error.provider

        return JSONResponse(
            status_code=exc.status_code,
            content=exc.error.to_dict(),
            headers=headers
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle standard HTTP exceptions."""
        request_id = f"req_{uuid.uuid4().hex[:24]}"
        message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": "http_error",
                    "message": message,
                    "type": ErrorType.SEMANTIC.value if exc.status_code < 500 else ErrorType.INFRA.value,
                    "request_id": request_id,
                    "retryable": exc.status_code >= 500
                }
            },
            headers={"X-Request-Id": request_id}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        request_id = request.headers.get("x-request-id", "") or f"req_{uuid.uuid4().hex[:24]}"
        get_logger("airouter.server").exception(
            "Unhandled error",
            request_id=request_id,
            error=str(exc),
        )
        error = InfraError(
            ErrorDetails(
                code="internal_error",
                message="An unexpected error occurred",
                type=ErrorType.INFRA,
                request_id=request_id,
                retryable=True,
            ),
            status_code=500
        )
        return JSONResponse(
            status_code=500,
            content=error.error.to_dict(),
            headers={"X-Request-Id": request_id}
        )

    return app


app = create_app()


# ============================================================
# Run server
# ============================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "airouter.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
