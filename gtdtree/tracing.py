"""
Distributed tracing for the item tree service using OpenTelemetry.

Database statements and structural operations run inside spans; exporting is
opt-in (console exporter) so the default install only records in-process.
"""
import os
import logging
from typing import Optional, Dict, Any
from contextlib import contextmanager

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource

logger = logging.getLogger(__name__)

_tracer: Optional[trace.Tracer] = None
_service_name = os.getenv("OTEL_SERVICE_NAME", "gtdtree")
_enable_console = os.getenv("OTEL_CONSOLE_EXPORTER_ENABLED", "false").lower() == "true"


def setup_tracing() -> None:
    """Install an SDK tracer provider for the service."""
    global _tracer

    if _tracer is not None:
        logger.debug("Tracing already initialized")
        return

    resource = Resource.create({
        "service.name": _service_name,
        "service.version": os.getenv("SERVICE_VERSION", "0.1.0"),
        "deployment.environment": os.getenv("ENVIRONMENT", "development"),
    })
    provider = TracerProvider(resource=resource)

    if _enable_console:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        logger.info("Console span exporter enabled")

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(__name__)
    logger.info(f"OpenTelemetry tracing initialized for {_service_name}")


def get_tracer() -> trace.Tracer:
    """Get the service tracer (no-op tracer until setup_tracing() is called)."""
    return _tracer or trace.get_tracer(__name__)


@contextmanager
def trace_span(
    name: str,
    attributes: Optional[Dict[str, Any]] = None,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL
):
    """
    Context manager for creating a trace span.

    Args:
        name: Name of the span
        attributes: Optional attributes to add to the span
        kind: Span kind (INTERNAL, SERVER, CLIENT, etc.)

    Example:
        with trace_span("tree.move", {"item.id": item_id}):
            ordering.move(item_id, parent_id)
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(name, kind=kind, record_exception=False) as span:
        if attributes:
            for key, value in attributes.items():
                if value is None:
                    continue
                if isinstance(value, (str, int, float, bool)):
                    span.set_attribute(key, value)
                else:
                    span.set_attribute(key, str(value))
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise


def add_span_attribute(key: str, value: Any) -> None:
    """Attach an attribute to the current span, if one is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attribute(key, value)
