"""OpenTelemetry-based observability for the transport runtime."""

from assistant_transport.observability.exporters import (
    ObservabilityConfig,
    configure_exporters,
    shutdown,
)
from assistant_transport.observability.metrics import record_frame, record_run, record_tool_call
from assistant_transport.observability.tracing import get_tracer, span

__all__ = [
    "ObservabilityConfig",
    "configure_exporters",
    "get_tracer",
    "record_frame",
    "record_run",
    "record_tool_call",
    "shutdown",
    "span",
]
