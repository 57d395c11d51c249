"""
airouter - Backend Client Base

Abstract base class for the text generation backends the router
dispatches to, plus a registry keyed by provider id.

Each backend client is responsible for:
1. Calling its provider with the prompt, model and sampling parameters
2. Returning content and token usage in the unified GenerationResult
3. Raising BackendError (or a subclass) on provider-side failures
4. Keeping pooled counters that the router reads to refresh availability
"""

import time
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from ..core.errors import BackendNotFoundError
from ..core.models import (
    BackendStats,
    GenerationResult,
    HealthCheckResult,
    SamplingParams,
)


class BaseBackend(ABC):
    """
    Abstract base class for backend clients.

    Each backend must implement:
    - generate_text: Produce a completion for a prompt
    - health_check: Probe the provider
    """

    provider_id: str

    def __init__(self, provider_id: str, instance_count: int = 1):
        self.provider_id = provider_id
        self._stats = BackendStats(
            instance_count=instance_count,
            healthy_instances=instance_count,
        )

    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        model: Optional[str],
        params: SamplingParams,
        request_id: str = ""
    ) -> GenerationResult:
        """
        Generate text.

        Args:
            prompt: Full prompt text
            model: Model id, or None for the provider's default
            params: Sampling parameters
            request_id: Correlation id for error tracking

        Returns:
            Unified generation result
        """
        pass

    @abstractmethod
    async def health_check(self) -> HealthCheckResult:
        """Probe the provider."""
        pass

    def get_stats(self) -> BackendStats:
        """Snapshot of pooled counters."""
        return BackendStats(**vars(self._stats))

    async def close(self):
        """Release client resources."""
        return

    # ============================================================
    # Helper methods for subclasses
    # ============================================================

    def _record_call(self, success: bool):
        self._stats.total_requests += 1
        if not success:
            self._stats.total_errors += 1
        self._stats.last_used = time.time()

    def _set_healthy_instances(self, healthy: int):
        healthy = max(0, min(healthy, self._stats.instance_count))
        self._stats.healthy_instances = healthy
        self._stats.unhealthy_instances = self._stats.instance_count - healthy


class BackendRegistry:
    """Backend clients keyed by provider id."""

    def __init__(self, backends: Optional[Iterable[BaseBackend]] = None):
        self._backends: Dict[str, BaseBackend] = {}
        for backend in backends or []:
            self.register(backend)

    def register(self, backend: BaseBackend):
        self._backends[backend.provider_id] = backend

    def get(self, provider_id: str) -> BaseBackend:
        """Get the client for a provider; raises BackendNotFoundError."""
        backend = self._backends.get(provider_id)
        if backend is None:
            raise BackendNotFoundError(provider_id)
        return backend

    def has(self, provider_id: str) -> bool:
        return provider_id in self._backends

    def provider_ids(self) -> List[str]:
        return list(self._backends.keys())

    def get_service_stats(self) -> Dict[str, BackendStats]:
        """Pooled counters of every registered client."""
        return {pid: backend.get_stats() for pid, backend in self._backends.items()}

    async def close_all(self):
        for backend in self._backends.values():
            await backend.close()
