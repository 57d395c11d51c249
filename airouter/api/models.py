"""
airouter - API Request/Response Models

Pydantic models for API validation and serialization.
These are the external-facing models that clients interact with; the
routes convert them to the internal dataclasses in core.models.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..core.models import (
    BatchMode,
    CostPreference,
    DistributionStrategy,
    QualityPreference,
    RoutingRequest,
    RoutingRule,
    RoutingStrategy,
    RuleAction,
    SamplingParams,
    SpeedPreference,
    StrategyWeights,
    UserConstraints,
    UserPreferences,
)

MAX_BATCH_SIZE = 100


# ============================================================
# Request Models
# ============================================================

class PreferencesInput(BaseModel):
    """Soft routing hints."""
    cost: Optional[CostPreference] = None
    speed: Optional[SpeedPreference] = None
    quality: Optional[QualityPreference] = None
    provider: Optional[str] = None
    model: Optional[str] = None


class ConstraintsInput(BaseModel):
    """Hard routing limits."""
    max_response_time: Optional[float] = Field(default=None, gt=0, description="Milliseconds")
    max_cost: Optional[float] = Field(default=None, ge=0)
    min_quality: Optional[float] = Field(default=None, ge=0, le=1)
    allowed_providers: Optional[List[str]] = None
    blocked_providers: Optional[List[str]] = None
    max_tokens_per_request: Optional[int] = Field(default=None, ge=1)


class RouteRequest(BaseModel):
    """Body of POST /v1/route."""
    prompt: str = Field(..., min_length=1, max_length=100000)
    context: List[str] = Field(default_factory=list)
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, ge=1, le=32000)
    top_p: Optional[float] = Field(default=None, ge=0, le=1)
    frequency_penalty: Optional[float] = Field(default=None, ge=-2, le=2)
    presence_penalty: Optional[float] = Field(default=None, ge=-2, le=2)
    stop: Optional[List[str]] = Field(default=None, max_length=4)
    preferences: Optional[PreferencesInput] = None
    constraints: Optional[ConstraintsInput] = None
    request_id: Optional[str] = Field(default=None, max_length=128)
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_internal(self) -> RoutingRequest:
        return RoutingRequest(
            prompt=self.prompt,
            context=list(self.context),
            params=SamplingParams(
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                top_p=self.top_p,
                frequency_penalty=self.frequency_penalty,
                presence_penalty=self.presence_penalty,
                stop=self.stop,
            ),
            preferences=UserPreferences(**self.preferences.model_dump()) if self.preferences else None,
            constraints=UserConstraints(**self.constraints.model_dump()) if self.constraints else None,
            request_id=self.request_id,
            user_id=self.user_id,
            session_id=self.session_id,
            metadata=dict(self.metadata),
        )


class ConcurrentRouteRequest(RouteRequest):
    """Body of POST /v1/route/concurrent."""
    concurrency: int = Field(default=2, ge=1, le=10)


class BatchRouteRequest(BaseModel):
    """
    Body of POST /v1/route/batch.

    With `distribution` set, requests are spread by the load distributor;
    otherwise each goes through full routing in the given `mode`.
    """
    requests: List[RouteRequest] = Field(..., min_length=1, max_length=MAX_BATCH_SIZE)
    distribution: Optional[DistributionStrategy] = None
    mode: BatchMode = BatchMode.CONCURRENT


class WeightsInput(BaseModel):
    cost: float = Field(default=0.25, ge=0, le=1)
    speed: float = Field(default=0.25, ge=0, le=1)
    quality: float = Field(default=0.25, ge=0, le=1)
    availability: float = Field(default=0.25, ge=0, le=1)


class RuleInput(BaseModel):
    action: RuleAction
    condition: str = ""
    threshold: Optional[float] = Field(default=None, ge=0, le=1)


class StrategyInput(BaseModel):
    """Body of POST /v1/strategies."""
    name: str = Field(..., min_length=1, max_length=64, pattern=r"^[a-zA-Z0-9_-]+$")
    description: str = Field(default="", max_length=1024)
    weights: WeightsInput = Field(default_factory=WeightsInput)
    rules: List[RuleInput] = Field(default_factory=list)
    priority: int = 0

    def to_internal(self) -> RoutingStrategy:
        return RoutingStrategy(
            name=self.name,
            description=self.description,
            weights=StrategyWeights(**self.weights.model_dump()),
            rules=[RoutingRule(r.action, r.condition, r.threshold) for r in self.rules],
            priority=self.priority,
        )


class ActiveStrategyInput(BaseModel):
    """Body of PUT /v1/strategies/active."""
    name: str = Field(..., min_length=1)


class WarmupRequest(BaseModel):
    """Body of POST /v1/warmup; all enabled providers when omitted."""
    providers: Optional[List[str]] = None


# ============================================================
# Response Models
# ============================================================

class AlternativeOutput(BaseModel):
    provider: str
    model: str
    score: float
    reason: str


class DecisionOutput(BaseModel):
    provider: str
    model: str
    score: float
    reasoning: List[str] = Field(default_factory=list)
    alternatives: List[AlternativeOutput] = Field(default_factory=list)


class UsageOutput(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    estimated_cost: float = 0.0


class MetadataOutput(BaseModel):
    routing_decision: Optional[DecisionOutput] = None
    fallback_used: bool = False
    cache_hit: bool = False
    cost_efficiency: float = 0.0
    quality_score: float = 0.0
    concurrent_results: Optional[Dict[str, Any]] = None
    fallback_chain: List[str] = Field(default_factory=list)


class RouteResponse(BaseModel):
    """Routed response."""
    id: str
    provider: str
    model: str
    content: str = ""
    usage: UsageOutput = Field(default_factory=UsageOutput)
    response_time: float = 0.0
    success: bool = True
    error: Optional[str] = None
    metadata: MetadataOutput = Field(default_factory=MetadataOutput)

    model_config = ConfigDict(protected_namespaces=())


class BatchRouteResponse(BaseModel):
    responses: List[RouteResponse]
    total: int
    successful: int

    @model_validator(mode="after")
    def check_counts(self):
        if self.total != len(self.responses):
            raise ValueError("total must equal the number of responses")
        return self


class StrategyListResponse(BaseModel):
    active: str
    strategies: List[Dict[str, Any]]
