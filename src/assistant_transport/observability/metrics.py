"""Metrics recording: counters and histograms for runs, frames, and tools."""

from __future__ import annotations

from typing import Any

from opentelemetry import metrics

# Lazily-created instruments
_meter: Any = None
_run_counter: Any = None
_run_latency_histogram: Any = None
_frame_counter: Any = None
_tool_call_counter: Any = None


def _ensure_instruments() -> None:
    """Create meter and instruments on first use."""
    global _meter, _run_counter, _run_latency_histogram, _frame_counter, _tool_call_counter

    if _meter is not None:
        return

    _meter = metrics.get_meter("assistant_transport")
    _run_counter = _meter.create_counter(
        "assistant_transport.runs",
        description="Runs by terminal outcome",
    )
    _run_latency_histogram = _meter.create_histogram(
        "assistant_transport.run_latency",
        description="Wall-clock duration of a run",
        unit="ms",
    )
    _frame_counter = _meter.create_counter(
        "assistant_transport.frames",
        description="Protocol frames decoded from the inbound stream",
    )
    _tool_call_counter = _meter.create_counter(
        "assistant_transport.tool_calls",
        description="Client-side tool executions",
    )


def record_run(outcome: str, latency_ms: float) -> None:
    """Record a finished run."""
    _ensure_instruments()
    _run_counter.add(1, {"outcome": outcome})
    _run_latency_histogram.record(latency_ms, {"outcome": outcome})


def record_frame(frame_type: str) -> None:
    """Record one decoded frame."""
    _ensure_instruments()
    _frame_counter.add(1, {"frame": frame_type})


def record_tool_call(tool_name: str, *, is_error: bool = False) -> None:
    """Record a tool call execution."""
    _ensure_instruments()
    _tool_call_counter.add(1, {"tool": tool_name, "error": str(is_error).lower()})


def reset_instruments() -> None:
    """Reset module-level instruments: useful for test isolation."""
    global _meter, _run_counter, _run_latency_histogram, _frame_counter, _tool_call_counter
    _meter = None
    _run_counter = None
    _run_latency_histogram = None
    _frame_counter = None
    _tool_call_counter = None
