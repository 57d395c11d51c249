"""
airouter - Response Cache

TTL-bound memoization of successful routed responses.

- CacheStore: get/set/delete contract for any backing store
- InMemoryCacheStore: dict-backed store with lazy expiry and cleanup
- ResponseCache: request-aware layer computing keys, enforcing
  "successful, non-fallback responses only", marking hits, and
  tracking hit/miss counts

Keys are SHA-256 digests of the request fields that determine the
response: prompt, preferred model, temperature, max_tokens and the
active strategy name.
"""

import copy
import hashlib
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..core.models import EnhancedRoutingResponse, RoutingRequest
from ..observability.logging import get_logger

logger = get_logger(__name__)


class CacheEntry:
    """Cached value with its expiry bookkeeping."""

    def __init__(self, data: Any, ttl: float, created_at: Optional[float] = None):
        self.data = data
        self.ttl = ttl  # seconds
        self.created_at = created_at or time.time()
        self.access_count = 0

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now or time.time()) - self.created_at > self.ttl

    def access(self):
        self.access_count += 1


class CacheStore(ABC):
    """Backing store contract."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Value for key, or None when absent or expired."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: float) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    async def clear(self) -> None:
        return

    async def cleanup_expired(self) -> int:
        return 0

    def size(self) -> int:
        return 0


class InMemoryCacheStore(CacheStore):
    """
    Dict-backed store.

    Every operation completes without awaiting, so under asyncio each one
    is atomic and readers never wait on writers.
    """

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired():
            self._entries.pop(key, None)
            return None
        entry.access()
        return entry.data

    async def set(self, key: str, value: Any, ttl: float) -> None:
        self._entries[key] = CacheEntry(value, ttl)

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        self._entries.clear()

    async def cleanup_expired(self) -> int:
        now = time.time()
        expired = [k for k, entry in list(self._entries.items()) if entry.is_expired(now)]
        for key in expired:
            self._entries.pop(key, None)
        if expired:
            logger.debug("Expired cache entries removed", removed=len(expired))
        return len(expired)

    def size(self) -> int:
        return len(self._entries)


def cache_key(request: RoutingRequest, strategy_name: str) -> str:
    """Stable key for the response-determining fields of a request."""
    payload = {
        "prompt": request.prompt,
        "context": list(request.context),
        "model": request.preferred_model,
        "temperature": request.params.temperature,
        "max_tokens": request.params.max_tokens,
        "strategy": strategy_name,
    }
    canonical = json.dumps(payload, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class ResponseCache:
    """Request-aware cache layer used by the router."""

    def __init__(self, store: Optional[CacheStore] = None, ttl: float = 300.0):
        self.store = store or InMemoryCacheStore()
        self.ttl = ttl
        self.hits = 0
        self.misses = 0

    async def lookup(self, request: RoutingRequest, strategy_name: str) -> Optional[EnhancedRoutingResponse]:
        """
        Cached response for the request, marked as a cache hit.

        Returns:
            A copy with metadata.cache_hit=True, or None on a miss
        """
        cached = await self.store.get(cache_key(request, strategy_name))
        if cached is None:
            self.misses += 1
            return None

        self.hits += 1
        hit = copy.deepcopy(cached)
        hit.metadata.cache_hit = True
        return hit

    async def store_response(
        self,
        request: RoutingRequest,
        strategy_name: str,
        response: EnhancedRoutingResponse,
    ) -> bool:
        """
        Store a response if it is cacheable.

        Returns:
            True if stored
        """
        if not response.success or response.metadata.fallback_used:
            return False
        await self.store.set(cache_key(request, strategy_name), copy.deepcopy(response), self.ttl)
        return True

    async def cleanup_expired(self) -> int:
        return await self.store.cleanup_expired()

    async def clear(self):
        await self.store.clear()
        self.hits = 0
        self.misses = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_entries": self.store.size(),
            "hit_rate": round(self.hit_rate, 4),
            "hits": self.hits,
            "misses": self.misses,
        }
