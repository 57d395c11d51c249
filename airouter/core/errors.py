"""
airouter - Error Definitions

Error taxonomy with infra vs semantic classification.

Infra errors come from backends or from exhausting every candidate and
may succeed on a later attempt. Semantic errors are configuration or
request problems and are surfaced immediately without retry.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorType(str, Enum):
    """Error classification."""
    INFRA = "infra_error"
    SEMANTIC = "semantic_error"


@dataclass
class ErrorDetails:
    """Full error information for API response."""
    # Core fields (always present)
    code: str
    message: str
    type: ErrorType

    # Context fields
    provider: Optional[str] = None
    model: Optional[str] = None
    param: Optional[str] = None

    # Trace fields
    request_id: str = ""

    # Recovery fields
    retryable: bool = False
    fallback_attempted: Optional[bool] = None

    # Debug fields
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "code": self.code,
            "message": self.message,
            "type": self.type.value,
            "request_id": self.request_id,
            "retryable": self.retryable,
        }

        if self.provider:
            result["provider"] = self.provider
        if self.model:
            result["model"] = self.model
        if self.param:
            result["param"] = self.param
        if self.fallback_attempted is not None:
            result["fallback_attempted"] = self.fallback_attempted
        if self.details:
            result["details"] = self.details

        return {"error": result}


class RouterError(Exception):
    """Base exception for all airouter errors."""

    def __init__(self, error: ErrorDetails, status_code: int = 500):
        self.error = error
        self.status_code = status_code
        super().__init__(error.message)

    @property
    def code(self) -> str:
        return self.error.code


# ============================================================
# Infra Errors
# ============================================================

class InfraError(RouterError):
    """Base class for infrastructure errors."""
    pass


class BackendError(InfraError):
    """A backend client failed to produce a generation."""

    def __init__(
        self,
        provider: str,
        message: str = "",
        model: Optional[str] = None,
        request_id: str = "",
        status_code: int = 502,
    ):
        super().__init__(
            ErrorDetails(
                code="backend_error",
                message=message or f"{provider} failed to generate a response",
                type=ErrorType.INFRA,
                provider=provider,
                model=model,
                request_id=request_id,
                retryable=True,
            ),
            status_code=status_code
        )


class BackendTimeoutError(BackendError):
    """Backend did not answer within the per-call deadline."""

    def __init__(
        self,
        provider: str,
        timeout_ms: float,
        model: Optional[str] = None,
        request_id: str = "",
    ):
        super().__init__(
            provider=provider,
            message=f"{provider} did not respond within {int(timeout_ms)}ms",
            model=model,
            request_id=request_id,
            status_code=504,
        )
        self.error.code = "backend_timeout"
        self.error.details = {"timeout_ms": timeout_ms}


class BackendNotFoundError(BackendError):
    """No backend client is registered for the provider."""

    def __init__(self, provider: str, request_id: str = ""):
        super().__init__(
            provider=provider,
            message=f"No backend client registered for provider '{provider}'",
            request_id=request_id,
            status_code=503,
        )
        self.error.code = "backend_not_found"
        self.error.retryable = False


class AllFallbacksFailedError(InfraError):
    """Primary dispatch failed and no fallback provider could serve the request."""

    def __init__(
        self,
        failed_provider: str,
        original_error: Optional[BaseException] = None,
        providers_tried: Optional[List[str]] = None,
        request_id: str = "",
    ):
        original = str(original_error) if original_error else "unknown error"
        super().__init__(
            ErrorDetails(
                code="all_fallbacks_failed",
                message=f"Request to {failed_provider} failed and no fallback succeeded: {original}",
                type=ErrorType.INFRA,
                provider=failed_provider,
                request_id=request_id,
                retryable=True,
                fallback_attempted=True,
                details={
                    "providers_tried": providers_tried or [],
                    "original_error": original,
                }
            ),
            status_code=503
        )
        self.original_error = original_error


class AllCandidatesFailedError(InfraError):
    """Every participant of a concurrent race failed."""

    def __init__(
        self,
        candidates: List[str],
        errors: Optional[List[str]] = None,
        request_id: str = "",
    ):
        super().__init__(
            ErrorDetails(
                code="all_candidates_failed",
                message=f"All {len(candidates)} concurrent candidates failed",
                type=ErrorType.INFRA,
                request_id=request_id,
                retryable=True,
                details={
                    "candidates": candidates,
                    "errors": errors or [],
                }
            ),
            status_code=502
        )
        self.candidates = candidates


# ============================================================
# Semantic Errors
# ============================================================

class SemanticError(RouterError):
    """Base class for configuration and request errors."""
    pass


class NoServiceAvailableError(SemanticError):
    """No candidate survived filtering."""

    def __init__(self, reason: str = "", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="no_service_available",
                message=reason or "No AI service satisfies the request constraints",
                type=ErrorType.SEMANTIC,
                request_id=request_id,
                retryable=False,
            ),
            status_code=503
        )


class UnknownStrategyError(SemanticError):
    """Requested routing strategy is not registered."""

    def __init__(self, name: str, available: Optional[List[str]] = None):
        super().__init__(
            ErrorDetails(
                code="unknown_strategy",
                message=f"Routing strategy '{name}' not found",
                type=ErrorType.SEMANTIC,
                param="strategy",
                retryable=False,
                details={"available": available or []}
            ),
            status_code=400
        )
        self.name = name


class InvalidRequestError(SemanticError):
    """Request failed validation."""

    def __init__(self, message: str, param: Optional[str] = None, request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="invalid_request",
                message=message,
                type=ErrorType.SEMANTIC,
                param=param,
                request_id=request_id,
                retryable=False
            ),
            status_code=400
        )
