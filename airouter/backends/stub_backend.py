"""
airouter - Stub Backend

Deterministic in-process backend used for local mode and tests.
No network calls, no provider keys required.
"""

import asyncio
from typing import List, Optional

from .base import BaseBackend
from ..core.errors import BackendError
from ..core.models import (
    GenerationResult,
    HealthCheckResult,
    SamplingParams,
    TokenUsage,
)


class StubBackend(BaseBackend):
    """Deterministic backend for tests/smoke checks."""

    def __init__(
        self,
        provider_id: str,
        content: str = "stub: deterministic response",
        latency_ms: float = 0.0,
        fail: bool = False,
        health_status: str = "healthy",
        health_response_time: Optional[float] = 5.0,
        health_error: bool = False,
        default_model: str = "stub-model",
    ):
        super().__init__(provider_id)
        self.content = content
        self.latency_ms = latency_ms
        self.fail = fail
        self.health_status = health_status
        self.health_response_time = health_response_time
        self.health_error = health_error
        self.default_model = default_model
        # (model, prompt) of every generate_text call, in order
        self.calls: List[tuple] = []

    async def generate_text(
        self,
        prompt: str,
        model: Optional[str],
        params: SamplingParams,
        request_id: str = "",
    ) -> GenerationResult:
        self.calls.append((model, prompt))

        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000)

        if self.fail:
            self._record_call(success=False)
            raise BackendError(
                provider=self.provider_id,
                message=f"{self.provider_id} stub configured to fail",
                model=model,
                request_id=request_id,
            )

        self._record_call(success=True)
        return GenerationResult(
            content=self.content,
            usage=TokenUsage(prompt_tokens=len(prompt.split()), completion_tokens=6),
            model=model or self.default_model,
        )

    async def health_check(self) -> HealthCheckResult:
        if self.health_error:
            self._set_healthy_instances(0)
            raise BackendError(
                provider=self.provider_id,
                message=f"{self.provider_id} health check failed",
            )
        self._set_healthy_instances(
            self._stats.instance_count if self.health_status == "healthy" else 0
        )
        return HealthCheckResult(
            status=self.health_status,
            response_time=self.health_response_time,
        )

    @property
    def call_count(self) -> int:
        return len(self.calls)
