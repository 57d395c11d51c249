"""
airouter - Routing Module

Request routing with:
- Live per-service metrics (EMA)
- Weighted scoring under named strategies
- Candidate filtering, rule pipelines and ranking
- Response caching and provider fallback
- Concurrent racing and batch load distribution
"""

from .router import Router
from .metrics_store import ServiceMetricsStore, ema, initial_metrics
from .scoring import ScoringEngine, score, race_score, cost_efficiency
from .strategies import StrategyRegistry, default_strategies, DEFAULT_STRATEGY
from .selector import CandidateSelector, ScoredCandidate
from .cache import CacheStore, InMemoryCacheStore, ResponseCache, cache_key
from .fallback import FallbackChain, FallbackAttempt, FallbackResult
from .dispatch import Dispatcher, DispatchResult
from .racer import ConcurrentRacer
from .distributor import LoadDistributor, distribution_weight
from .validation import validate_request

__all__ = [
    # Router
    "Router",
    # Metrics
    "ServiceMetricsStore",
    "ema",
    "initial_metrics",
    # Scoring
    "ScoringEngine",
    "score",
    "race_score",
    "cost_efficiency",
    # Strategies
    "StrategyRegistry",
    "default_strategies",
    "DEFAULT_STRATEGY",
    # Selection
    "CandidateSelector",
    "ScoredCandidate",
    # Cache
    "CacheStore",
    "InMemoryCacheStore",
    "ResponseCache",
    "cache_key",
    # Fallback
    "FallbackChain",
    "FallbackAttempt",
    "FallbackResult",
    # Dispatch
    "Dispatcher",
    "DispatchResult",
    "ConcurrentRacer",
    "LoadDistributor",
    "distribution_weight",
    "validate_request",
]
