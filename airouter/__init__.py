"""
airouter - AI Request Routing

Chooses among heterogeneous text generation backends by cost, latency,
quality and availability, executes requests with caching and fallback,
races top candidates on demand, and distributes batches across the
service pool.
"""

from .core.config import RouterConfig
from .core.models import RoutingRequest, EnhancedRoutingResponse
from .routing.router import Router

__version__ = "1.0.0"

__all__ = [
    "Router",
    "RouterConfig",
    "RoutingRequest",
    "EnhancedRoutingResponse",
]
