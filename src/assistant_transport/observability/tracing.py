"""Tracer access and span context manager."""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace

_TRACER_NAME = "assistant_transport"


def get_tracer(name: str = _TRACER_NAME) -> trace.Tracer:
    """Return an OTel tracer (a no-op tracer until a provider is configured)."""
    return trace.get_tracer(name)


@contextmanager
def span(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Context manager that opens a span as the current span.

    Exceptions are not recorded automatically; callers decide which
    failures are worth attaching to the span.
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(
        name,
        attributes=attributes,
        record_exception=False,
        set_status_on_exception=False,
    ) as s:
        yield s
