"""
airouter - OpenTelemetry Tracing

Distributed tracing for routed requests with OpenTelemetry.

Features:
- W3C trace context propagation (traceparent header)
- Server spans for API requests
- Client spans around every backend dispatch and health check
- OTLP exporter support when opentelemetry-exporter-otlp is installed

Usage:
    from airouter.observability.tracing import setup_tracing, trace_backend_call

    setup_tracing(service_name="airouter", otlp_endpoint="http://localhost:4317")

    with trace_backend_call("openai", "gpt-4", "generate") as span:
        result = await client.generate_text(...)
        span.set_attribute("ai.tokens.total", result.usage.total_tokens)
"""

import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.propagate import extract, set_global_textmap
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import Span, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.trace import SpanKind
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

# Optional OTLP exporter (requires opentelemetry-exporter-otlp)
try:
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    OTLP_AVAILABLE = True
except ImportError:
    OTLP_AVAILABLE = False


@dataclass
class TraceContext:
    """Trace identifiers of a span, hex encoded."""
    trace_id: str
    span_id: str
    trace_flags: int = 1

    @classmethod
    def from_span(cls, span: Span) -> "TraceContext":
        ctx = span.get_span_context()
        return cls(
            trace_id=format(ctx.trace_id, "032x"),
            span_id=format(ctx.span_id, "016x"),
            trace_flags=ctx.trace_flags,
        )

    def to_traceparent(self) -> str:
        """Generate W3C traceparent header value."""
        return f"00-{self.trace_id}-{self.span_id}-{self.trace_flags:02x}"


class TracingManager:
    """
    Central tracing manager using OpenTelemetry.

    Singleton pattern for global access.
    """

    _instance: Optional["TracingManager"] = None

    def __init__(
        self,
        service_name: str = "airouter",
        service_version: str = "1.0.0",
        otlp_endpoint: Optional[str] = None,
        console_export: bool = False,
    ):
        """
        Initialize tracing.

        Args:
            service_name: Name of the service
            service_version: Version of the service
            otlp_endpoint: OTLP collector endpoint (e.g., http://localhost:4317)
            console_export: Whether to export spans to console (for debugging)
        """
        self.service_name = service_name
        self.service_version = service_version

        resource = Resource.create({
            SERVICE_NAME: service_name,
            SERVICE_VERSION: service_version,
            "deployment.environment": os.getenv("MODE", "local"),
        })

        self.provider = TracerProvider(resource=resource)

        if otlp_endpoint and OTLP_AVAILABLE:
            self.provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint))
            )

        if console_export:
            self.provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(self.provider)
        set_global_textmap(TraceContextTextMapPropagator())

        # Bound to our provider so spans work even if a global provider was set earlier
        self.tracer = self.provider.get_tracer(service_name, service_version)

    @classmethod
    def get_instance(cls) -> "TracingManager":
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Reset singleton (for testing)."""
        cls._instance = None

    def get_tracer(self) -> trace.Tracer:
        return self.tracer

    def start_server_span(
        self,
        name: str,
        headers: Dict[str, str],
        attributes: Optional[Dict[str, Any]] = None,
    ):
        """Start a server span, continuing any traceparent in the headers."""
        normalized = {k.lower(): v for k, v in headers.items()}
        parent_context: Context = extract(normalized)
        return self.tracer.start_as_current_span(
            name,
            kind=SpanKind.SERVER,
            attributes=attributes,
            context=parent_context,
        )

    def start_client_span(
        self,
        name: str,
        attributes: Optional[Dict[str, Any]] = None,
    ):
        """Start a client span for an outgoing backend call."""
        return self.tracer.start_as_current_span(
            name,
            kind=SpanKind.CLIENT,
            attributes=attributes,
        )

    def shutdown(self):
        """Shutdown the tracer provider."""
        self.provider.shutdown()


# Module-level functions for convenience
_tracing_instance: Optional[TracingManager] = None


def setup_tracing(
    service_name: str = "airouter",
    service_version: str = "1.0.0",
    otlp_endpoint: Optional[str] = None,
    console_export: bool = False,
) -> TracingManager:
    """
    Setup distributed tracing.

    Call once at application startup.
    """
    global _tracing_instance

    if otlp_endpoint is None:
        otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    if os.getenv("OTEL_CONSOLE_EXPORT", "").lower() == "true":
        console_export = True

    _tracing_instance = TracingManager(
        service_name=service_name,
        service_version=service_version,
        otlp_endpoint=otlp_endpoint,
        console_export=console_export,
    )
    TracingManager._instance = _tracing_instance
    return _tracing_instance


def get_tracing_manager() -> TracingManager:
    """Get the tracing manager, creating a default one on first use."""
    global _tracing_instance
    if _tracing_instance is None:
        _tracing_instance = TracingManager.get_instance()
    return _tracing_instance


def get_tracer() -> trace.Tracer:
    return get_tracing_manager().get_tracer()


@contextmanager
def trace_backend_call(provider: str, model: str, operation: str = "generate"):
    """
    Context manager for tracing backend calls.

    Exceptions raised inside the block are recorded on the span and
    mark it as errored.
    """
    tracing = get_tracing_manager()

    with tracing.start_client_span(
        name=f"{provider}.{operation}",
        attributes={
            "ai.provider": provider,
            "ai.model": model or "",
            "ai.operation": operation,
        },
    ) as span:
        yield span
