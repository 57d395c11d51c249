"""
airouter - Fallback Chain

Ordered list of providers to try after the selected candidate fails.

Chain construction:
- Enabled providers in configuration order
- Minus the provider that just failed
- Minus anything in the request's blocked_providers

Each provider is tried once with the request's preferred model when it
serves that model, otherwise with its first enabled model. Fallback
responses are never a real selection, so they carry placeholder scores
and are not cached by the router.
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..core.config import RouterConfig
from ..core.models import RoutingRequest

# Score and quality reported for a response served by fallback
FALLBACK_PLACEHOLDER_SCORE = 0.5


@dataclass
class FallbackAttempt:
    """Record of a fallback attempt."""
    provider: str
    model: Optional[str]
    error: str
    timestamp: float
    duration_ms: int


@dataclass
class FallbackResult:
    """Summary of a fallback chain run."""
    success: bool
    final_provider: Optional[str] = None
    final_model: Optional[str] = None
    attempts: List[FallbackAttempt] = field(default_factory=list)
    total_attempts: int = 0
    total_duration_ms: int = 0

    @property
    def providers_tried(self) -> List[str]:
        """Providers attempted in order, the final one included."""
        tried = [a.provider for a in self.attempts]
        if self.final_provider:
            tried.append(self.final_provider)
        return tried


class FallbackChain:
    """
    Iterator over fallback candidates for one failed request.

    Usage:
        chain = FallbackChain.for_request(config, request, failed_provider="openai")
        entry = chain.get_next()
        while entry:
            provider, model = entry
            ...
            chain.record_attempt(provider, model, str(error), duration_ms)
            entry = chain.get_next()
    """

    def __init__(self, chain: List[Tuple[str, Optional[str]]]):
        """
        Args:
            chain: (provider, model) pairs in fallback order
        """
        self.chain = chain
        self.attempts: List[FallbackAttempt] = []
        self.current_index = 0

    @classmethod
    def for_request(
        cls,
        config: RouterConfig,
        request: RoutingRequest,
        failed_provider: str,
    ) -> "FallbackChain":
        """Build the chain for a request whose dispatch to failed_provider failed."""
        blocked = set(request.blocked_providers)
        preferred_model = request.preferred_model

        chain: List[Tuple[str, Optional[str]]] = []
        for provider in config.enabled_providers():
            if provider.id == failed_provider or provider.id in blocked:
                continue
            models = [m.id for m in provider.enabled_models()]
            if preferred_model in models:
                model = preferred_model
            else:
                model = models[0] if models else None
            chain.append((provider.id, model))

        return cls(chain)

    def get_next(self) -> Optional[Tuple[str, Optional[str]]]:
        """
        Get the next provider/model to try.

        Returns:
            (provider, model) tuple or None if chain exhausted
        """
        if self.current_index >= len(self.chain):
            return None
        entry = self.chain[self.current_index]
        self.current_index += 1
        return entry

    def record_attempt(
        self,
        provider: str,
        model: Optional[str],
        error: str,
        duration_ms: int
    ):
        """Record a failed fallback attempt."""
        self.attempts.append(FallbackAttempt(
            provider=provider,
            model=model,
            error=error,
            timestamp=time.time(),
            duration_ms=duration_ms
        ))

    def get_result(
        self,
        success: bool,
        final_provider: Optional[str] = None,
        final_model: Optional[str] = None,
    ) -> FallbackResult:
        return FallbackResult(
            success=success,
            final_provider=final_provider,
            final_model=final_model,
            attempts=list(self.attempts),
            total_attempts=len(self.attempts),
            total_duration_ms=sum(a.duration_ms for a in self.attempts),
        )

    def is_empty(self) -> bool:
        return not self.chain

