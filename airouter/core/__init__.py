"""
airouter Core Module

Data models, error taxonomy and configuration shared by the routing core.
"""

from .models import (
    # Enums
    CostPreference,
    SpeedPreference,
    QualityPreference,
    RuleAction,
    DistributionStrategy,
    BatchMode,

    # Requests
    SamplingParams,
    UserPreferences,
    UserConstraints,
    RoutingRequest,
    generate_request_id,

    # Metrics & strategies
    ServiceKey,
    ServiceMetrics,
    StrategyWeights,
    RoutingRule,
    RoutingStrategy,

    # Responses
    Alternative,
    RoutingDecision,
    TokenUsage,
    ResponseMetadata,
    EnhancedRoutingResponse,

    # Backends
    GenerationResult,
    HealthCheckResult,
    BackendStats,
)
from .errors import (
    ErrorType,
    ErrorDetails,
    RouterError,
    InfraError,
    SemanticError,
    BackendError,
    BackendTimeoutError,
    BackendNotFoundError,
    AllFallbacksFailedError,
    AllCandidatesFailedError,
    NoServiceAvailableError,
    UnknownStrategyError,
    InvalidRequestError,
)
from .config import (
    ModelConfig,
    ProviderConfig,
    RouterConfig,
    default_providers,
)

__all__ = [
    "CostPreference",
    "SpeedPreference",
    "QualityPreference",
    "RuleAction",
    "DistributionStrategy",
    "BatchMode",
    "SamplingParams",
    "UserPreferences",
    "UserConstraints",
    "RoutingRequest",
    "generate_request_id",
    "ServiceKey",
    "ServiceMetrics",
    "StrategyWeights",
    "RoutingRule",
    "RoutingStrategy",
    "Alternative",
    "RoutingDecision",
    "TokenUsage",
    "ResponseMetadata",
    "EnhancedRoutingResponse",
    "GenerationResult",
    "HealthCheckResult",
    "BackendStats",
    "ErrorType",
    "ErrorDetails",
    "RouterError",
    "InfraError",
    "SemanticError",
    "BackendError",
    "BackendTimeoutError",
    "BackendNotFoundError",
    "AllFallbacksFailedError",
    "AllCandidatesFailedError",
    "NoServiceAvailableError",
    "UnknownStrategyError",
    "InvalidRequestError",
    "ModelConfig",
    "ProviderConfig",
    "RouterConfig",
    "default_providers",
]
