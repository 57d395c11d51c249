"""
airouter - API Dependencies

Shared dependencies for FastAPI routes.
"""

from dataclasses import asdict
from typing import Any, Dict

from fastapi import Request

from ..core.errors import ErrorDetails, ErrorType, InfraError
from ..core.models import EnhancedRoutingResponse
from ..routing.router import Router


def get_router(request: Request) -> Router:
    """
    Get the router instance.

    Dependency that provides access to the router stored on app.state
    by the server lifespan.
    """
    router = getattr(request.app.state, "router", None)
    if router is None:
        raise InfraError(
            ErrorDetails(
                code="service_unavailable",
                message="Router not initialized. Server may be starting up.",
                type=ErrorType.INFRA,
                request_id=request.headers.get("x-request-id", ""),
                retryable=True,
            ),
            status_code=503
        )
    return router


def response_to_dict(response: EnhancedRoutingResponse) -> Dict[str, Any]:
    """Plain dict of a routed response for JSON serialization."""
    return asdict(response)
