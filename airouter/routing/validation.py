"""
airouter - Request Validation

Checks applied before any routing work. Mirrors the HTTP layer's pydantic
limits so that direct callers of the Router get the same guarantees.
"""

from ..core.errors import InvalidRequestError
from ..core.models import RoutingRequest

MAX_PROMPT_LENGTH = 100000
MAX_TOKENS_LIMIT = 32000


def validate_request(request: RoutingRequest):
    """
    Validate a routing request.

    Raises:
        InvalidRequestError: First violated limit, with the offending param
    """
    request_id = request.request_id or ""

    if not request.prompt or not request.prompt.strip():
        raise InvalidRequestError("prompt must not be empty", param="prompt", request_id=request_id)

    if len(request.prompt) > MAX_PROMPT_LENGTH:
        raise InvalidRequestError(
            f"prompt exceeds {MAX_PROMPT_LENGTH} characters",
            param="prompt",
            request_id=request_id,
        )

    params = request.params
    if params.temperature is not None and not 0 <= params.temperature <= 2:
        raise InvalidRequestError(
            "temperature must be between 0 and 2",
            param="temperature",
            request_id=request_id,
        )

    if params.max_tokens is not None and not 1 <= params.max_tokens <= MAX_TOKENS_LIMIT:
        raise InvalidRequestError(
            f"max_tokens must be between 1 and {MAX_TOKENS_LIMIT}",
            param="max_tokens",
            request_id=request_id,
        )

    if params.top_p is not None and not 0 <= params.top_p <= 1:
        raise InvalidRequestError(
            "top_p must be between 0 and 1",
            param="top_p",
            request_id=request_id,
        )

    constraints = request.constraints
    if (
        constraints
        and constraints.max_tokens_per_request is not None
        and params.max_tokens is not None
        and params.max_tokens > constraints.max_tokens_per_request
    ):
        raise InvalidRequestError(
            f"max_tokens exceeds max_tokens_per_request ({constraints.max_tokens_per_request})",
            param="max_tokens",
            request_id=request_id,
        )
