"""InspectionRegistry: explicit, injectable registry for inspection tooling.

A registry is created at session start, handed to every runtime that should
be observable, and closed at session end.  It keeps a bounded event log per
registered source and notifies listeners when sources come and go or when
new events are recorded.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

MAX_EVENT_LOGS_PER_SOURCE = 200

Unsubscribe = Callable[[], None]


@dataclass(frozen=True, slots=True)
class EventLog:
    """One recorded event."""

    time: datetime
    event: str
    data: Any = None


@dataclass(slots=True)
class _Entry:
    name: str
    source: Any
    logs: list[EventLog] = field(default_factory=list)


class InspectionRegistry:
    """Tracks registered runtimes and their recent events."""

    def __init__(self, max_logs: int = MAX_EVENT_LOGS_PER_SOURCE) -> None:
        self._max_logs = max_logs
        self._entries: dict[int, _Entry] = {}
        self._next_id = 1
        self._listeners: set[Callable[[], None]] = set()
        self._event_listeners: dict[int, set[Callable[[list[EventLog]], None]]] = {}
        self._closed = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, name: str, source: Any) -> tuple[int, Unsubscribe]:
        """Register *source*; registering the same object twice is a no-op."""
        if self._closed:
            raise RuntimeError("InspectionRegistry is closed")
        for source_id, entry in self._entries.items():
            if entry.source is source:
                return source_id, lambda: None

        source_id = self._next_id
        self._next_id += 1
        self._entries[source_id] = _Entry(name=name, source=source)
        self._notify_listeners()

        def unregister() -> None:
            if self._entries.pop(source_id, None) is None:
                return
            self._event_listeners.pop(source_id, None)
            self._notify_listeners()

        return source_id, unregister

    def record(self, source_id: int, event: str, data: Any = None) -> None:
        """Append an event to a source's log, trimming to the newest entries."""
        entry = self._entries.get(source_id)
        if entry is None:
            return
        entry.logs.append(EventLog(time=datetime.now(UTC), event=event, data=data))
        if len(entry.logs) > self._max_logs:
            entry.logs = entry.logs[-self._max_logs:]
        self._notify_event_listeners(source_id)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[], None]) -> Unsubscribe:
        """Listen for sources being registered or unregistered."""
        self._listeners.add(listener)
        return lambda: self._listeners.discard(listener)

    def subscribe_to_events(
        self, source_id: int, listener: Callable[[list[EventLog]], None],
    ) -> Unsubscribe:
        """Listen for new events on one source; called immediately with its log."""
        listeners = self._event_listeners.setdefault(source_id, set())
        listeners.add(listener)
        entry = self._entries.get(source_id)
        if entry is not None:
            listener(list(entry.logs))

        def unsubscribe() -> None:
            current = self._event_listeners.get(source_id)
            if current is None:
                return
            current.discard(listener)
            if not current:
                del self._event_listeners[source_id]

        return unsubscribe

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_sources(self) -> list[tuple[int, str, Any]]:
        return [(sid, e.name, e.source) for sid, e in self._entries.items()]

    def get_source(self, source_id: int) -> Any:
        entry = self._entries.get(source_id)
        return entry.source if entry is not None else None

    def get_event_logs(self, source_id: int) -> list[EventLog]:
        entry = self._entries.get(source_id)
        return list(entry.logs) if entry is not None else []

    def clear_event_logs(self, source_id: int) -> None:
        entry = self._entries.get(source_id)
        if entry is None:
            return
        entry.logs = []
        self._notify_event_listeners(source_id)

    def clear_all_event_logs(self) -> None:
        for source_id, entry in self._entries.items():
            entry.logs = []
            self._notify_event_listeners(source_id)

    def close(self) -> None:
        """Tear down: drop every source and listener."""
        self._closed = True
        self._entries.clear()
        self._event_listeners.clear()
        self._notify_listeners()
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _notify_listeners(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.warning("Registry listener raised", exc_info=True)

    def _notify_event_listeners(self, source_id: int) -> None:
        listeners = self._event_listeners.get(source_id)
        entry = self._entries.get(source_id)
        if not listeners or entry is None:
            return
        logs = list(entry.logs)
        for listener in list(listeners):
            try:
                listener(logs)
            except Exception:
                logger.warning("Event listener raised", exc_info=True)

    def __len__(self) -> int:
        return len(self._entries)
