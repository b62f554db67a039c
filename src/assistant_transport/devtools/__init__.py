"""Inspection tooling support."""

from assistant_transport.devtools.registry import (
    MAX_EVENT_LOGS_PER_SOURCE,
    EventLog,
    InspectionRegistry,
)

__all__ = ["MAX_EVENT_LOGS_PER_SOURCE", "EventLog", "InspectionRegistry"]
