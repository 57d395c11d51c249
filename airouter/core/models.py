"""
airouter - Core Data Models

Internal data models shared by the routing core:
- Requests with sampling parameters, soft preferences and hard constraints
- Live per-service metrics
- Routing strategies and their closed set of rule kinds
- Routing decisions and the enhanced response returned to callers
"""

from __future__ import annotations

import random
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# A candidate is identified by its (provider, model) pair
ServiceKey = Tuple[str, str]


# ============================================================
# Enums
# ============================================================

class CostPreference(str, Enum):
    """Soft cost hint."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SpeedPreference(str, Enum):
    """Soft speed hint."""
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"


class QualityPreference(str, Enum):
    """Soft quality hint."""
    BASIC = "basic"
    GOOD = "good"
    EXCELLENT = "excellent"


class RuleAction(str, Enum):
    """Rule kinds a routing strategy can apply, in order, to its candidates."""
    PREFER_CHEAPEST = "prefer_cheapest"
    PREFER_FASTEST = "prefer_fastest"
    PREFER_HIGHEST_QUALITY = "prefer_highest_quality"
    FILTER_BY_COST = "filter_by_cost"
    FILTER_BY_RESPONSE_TIME = "filter_by_response_time"
    FILTER_BY_QUALITY = "filter_by_quality"
    SWITCH_ON_LOW_AVAILABILITY = "switch_on_low_availability"


class DistributionStrategy(str, Enum):
    """Load distribution policies for batches."""
    ROUND_ROBIN = "round-robin"
    WEIGHTED = "weighted"
    LEAST_CONNECTIONS = "least-connections"


class BatchMode(str, Enum):
    """Execution modes for batch processing."""
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    CONCURRENT = "concurrent"


# ============================================================
# Requests
# ============================================================

def generate_request_id() -> str:
    """Correlation id in the form req_<epoch ms>_<random suffix>."""
    suffix = "".join(random.choices("abcdefghijklmnopqrstuvwxyz0123456789", k=9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


@dataclass
class SamplingParams:
    """Generation parameters passed through to the backend."""
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    stop: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class UserPreferences:
    """Soft hints that add score bonuses but never exclude a candidate."""
    cost: Optional[CostPreference] = None
    speed: Optional[SpeedPreference] = None
    quality: Optional[QualityPreference] = None
    provider: Optional[str] = None
    model: Optional[str] = None


@dataclass
class UserConstraints:
    """Hard limits; a candidate violating any of them is dropped."""
    max_response_time: Optional[float] = None  # ms
    max_cost: Optional[float] = None
    min_quality: Optional[float] = None
    allowed_providers: Optional[List[str]] = None
    blocked_providers: Optional[List[str]] = None
    max_tokens_per_request: Optional[int] = None


@dataclass
class RoutingRequest:
    """
    A single text generation request.

    Treated as immutable once dispatched; only request_id is filled in
    by the router when the caller leaves it empty.
    """
    prompt: str
    context: List[str] = field(default_factory=list)
    params: SamplingParams = field(default_factory=SamplingParams)
    preferences: Optional[UserPreferences] = None
    constraints: Optional[UserConstraints] = None
    request_id: Optional[str] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def preferred_model(self) -> Optional[str]:
        return self.preferences.model if self.preferences else None

    @property
    def blocked_providers(self) -> List[str]:
        if self.constraints and self.constraints.blocked_providers:
            return list(self.constraints.blocked_providers)
        return []

    def full_prompt(self) -> str:
        """Prompt with any context entries prepended."""
        if not self.context:
            return self.prompt
        return "\n\n".join(list(self.context) + [self.prompt])


# ============================================================
# Metrics
# ============================================================

@dataclass
class ServiceMetrics:
    """Live metrics for one (provider, model) pair."""
    provider: str
    model: str
    availability: float = 1.0
    average_response_time: float = 2000.0  # ms, EMA
    error_rate: float = 0.0
    cost_per_token: float = 0.0
    quality_score: float = 0.7
    throughput: float = 0.0
    request_count: int = 0
    success_rate: float = 1.0  # EMA
    last_used: Optional[float] = None

    @property
    def key(self) -> ServiceKey:
        return (self.provider, self.model)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ============================================================
# Strategies
# ============================================================

@dataclass
class StrategyWeights:
    """Weight vector; expected to sum to about 1.0 but not enforced."""
    cost: float = 0.25
    speed: float = 0.25
    quality: float = 0.25
    availability: float = 0.25


@dataclass
class RoutingRule:
    """
    One step of a strategy's rule pipeline.

    ``condition`` is a human-readable label describing when the rule is
    meant to matter; the rule itself is applied unconditionally.
    ``threshold`` is only read by SWITCH_ON_LOW_AVAILABILITY.
    """
    action: RuleAction
    condition: str = ""
    threshold: Optional[float] = None


@dataclass
class RoutingStrategy:
    """Named weight vector plus ordered rules."""
    name: str
    description: str = ""
    weights: StrategyWeights = field(default_factory=StrategyWeights)
    rules: List[RoutingRule] = field(default_factory=list)
    priority: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "weights": asdict(self.weights),
            "rules": [
                {"action": r.action.value, "condition": r.condition, "threshold": r.threshold}
                for r in self.rules
            ],
            "priority": self.priority,
        }


# ============================================================
# Decisions & Responses
# ============================================================

@dataclass
class Alternative:
    """A runner-up candidate."""
    provider: str
    model: str
    score: float
    reason: str


@dataclass
class RoutingDecision:
    """Output of candidate selection."""
    provider: str
    model: str
    score: float
    reasoning: List[str] = field(default_factory=list)
    alternatives: List[Alternative] = field(default_factory=list)


@dataclass
class TokenUsage:
    """Token counts and estimated cost for one response."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    estimated_cost: float = 0.0

    def __post_init__(self):
        if not self.total_tokens:
            self.total_tokens = self.prompt_tokens + self.completion_tokens


@dataclass
class ResponseMetadata:
    """How a response was produced."""
    routing_decision: Optional[RoutingDecision] = None
    fallback_used: bool = False
    cache_hit: bool = False
    cost_efficiency: float = 0.0
    quality_score: float = 0.0
    concurrent_results: Optional[Dict[str, Any]] = None
    fallback_chain: List[str] = field(default_factory=list)


@dataclass
class EnhancedRoutingResponse:
    """Outcome of a routed request; also the unit stored in the response cache."""
    id: str
    provider: str
    model: str
    content: str = ""
    usage: TokenUsage = field(default_factory=TokenUsage)
    response_time: float = 0.0  # ms
    success: bool = True
    error: Optional[str] = None
    metadata: ResponseMetadata = field(default_factory=ResponseMetadata)

    @classmethod
    def failed(
        cls,
        request_id: str,
        provider: str,
        model: str,
        error: str,
        response_time: float = 0.0,
    ) -> EnhancedRoutingResponse:
        """Build a failed entry for batch results."""
        return cls(
            id=request_id,
            provider=provider,
            model=model,
            response_time=response_time,
            success=False,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ============================================================
# Backend results
# ============================================================

@dataclass
class GenerationResult:
    """What a backend client returns for one generation call."""
    content: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    model: Optional[str] = None


@dataclass
class HealthCheckResult:
    """Backend health probe outcome."""
    status: str  # "healthy" | "degraded" | "unhealthy"
    response_time: Optional[float] = None  # ms
    error: Optional[str] = None

    @property
    def is_healthy(self) -> bool:
        return self.status == "healthy"


@dataclass
class BackendStats:
    """Pooled counters reported by a backend client."""
    instance_count: int = 0
    healthy_instances: int = 0
    unhealthy_instances: int = 0
    total_requests: int = 0
    total_errors: int = 0
    last_used: Optional[float] = None
