"""
airouter - Observability Middleware

HTTP middleware that ties tracing and logging context to each API request,
plus a one-call setup for the whole observability stack.

Usage:
    from airouter.observability import setup_observability, ObservabilityMiddleware

    setup_observability(service_name="airouter")
    app.add_middleware(ObservabilityMiddleware)
"""

import os
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import Request, Response
from opentelemetry.trace import Status, StatusCode
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from .logging import LogContext, get_logger, setup_logging
from .metrics import setup_metrics
from .tracing import TraceContext, get_tracing_manager, setup_tracing


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Per-request tracing span and log context.

    The request id comes from the X-Request-Id header or is generated, and
    is echoed back on the response together with the trace id.
    """

    # Paths to exclude from detailed observability
    EXCLUDE_PATHS = {"/health", "/metrics", "/openapi.json", "/docs", "/redoc"}

    def __init__(
        self,
        app: ASGIApp,
        exclude_paths: Optional[set] = None,
    ):
        super().__init__(app)
        self.exclude_paths = exclude_paths or self.EXCLUDE_PATHS
        self.logger = get_logger("airouter.http")

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        tracing = get_tracing_manager()
        headers = dict(request.headers)

        request_id = headers.get("x-request-id", "") or f"req_{uuid.uuid4().hex[:24]}"
        start_time = time.perf_counter()

        with tracing.start_server_span(
            name=f"{request.method} {request.url.path}",
            headers=headers,
            attributes={
                "http.method": request.method,
                "http.route": request.url.path,
                "airouter.request_id": request_id,
            },
        ) as span:
            trace_ctx = TraceContext.from_span(span)

            LogContext.set_current(LogContext(
                request_id=request_id,
                trace_id=trace_ctx.trace_id,
                span_id=trace_ctx.span_id,
                endpoint=request.url.path,
            ))
            request.state.request_id = request_id
            request.state.trace_id = trace_ctx.trace_id

            try:
                response = await call_next(request)
                duration_ms = (time.perf_counter() - start_time) * 1000

                span.set_attribute("http.status_code", response.status_code)
                if response.status_code >= 500:
                    span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))
                else:
                    span.set_status(Status(StatusCode.OK))

                self._log_request(request, response, duration_ms)

                response.headers["X-Request-Id"] = request_id
                response.headers["X-Trace-Id"] = trace_ctx.trace_id
                return response

            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                self.logger.exception(
                    "Request failed with exception",
                    error=str(e),
                    error_type=type(e).__name__,
                    duration_ms=(time.perf_counter() - start_time) * 1000,
                )
                raise

            finally:
                LogContext.clear()

    def _log_request(self, request: Request, response: Response, duration_ms: float):
        """Log request completion."""
        log_data = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
        }

        if response.status_code >= 500:
            self.logger.error("Request completed with server error", **log_data)
        elif response.status_code >= 400:
            self.logger.warning("Request completed with client error", **log_data)
        else:
            self.logger.info("Request completed", **log_data)


_observability_initialized = False


def setup_observability(
    service_name: str = "airouter",
    service_version: str = "1.0.0",
    otlp_endpoint: Optional[str] = None,
    log_level: str = "INFO",
    metrics_enabled: bool = True,
    tracing_enabled: bool = True,
) -> Dict[str, Any]:
    """
    Setup logging, metrics and tracing.

    Call once at application startup. Safe to call multiple times.

    Returns:
        Dict with initialized components
    """
    global _observability_initialized

    result: Dict[str, Any] = {}

    if otlp_endpoint is None:
        otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    # Logging first so the other components can log
    setup_logging(
        level=os.getenv("LOG_LEVEL", log_level),
        json_output=os.getenv("LOG_FORMAT", "json").lower() == "json",
    )
    result["logging"] = True

    if metrics_enabled:
        result["metrics"] = setup_metrics()

    if tracing_enabled:
        result["tracing"] = setup_tracing(
            service_name=service_name,
            service_version=service_version,
            otlp_endpoint=otlp_endpoint,
        )

    if not _observability_initialized:
        get_logger("airouter.observability").info(
            "Observability initialized",
            service_name=service_name,
            service_version=service_version,
            metrics_enabled=metrics_enabled,
            tracing_enabled=tracing_enabled,
            otlp_endpoint=otlp_endpoint or "none",
        )
        _observability_initialized = True

    return result
