"""Tests for assistant_transport.devtools.registry: the inspection registry."""

from __future__ import annotations

import pytest

from assistant_transport.devtools.registry import InspectionRegistry


class TestRegistration:
    def test_register_and_unregister(self):
        registry = InspectionRegistry()
        changes = []
        registry.subscribe(lambda: changes.append(len(registry)))
        source = object()

        source_id, unregister = registry.register("rt", source)
        assert registry.get_source(source_id) is source
        assert registry.get_sources() == [(source_id, "rt", source)]

        unregister()
        unregister()
        assert registry.get_source(source_id) is None
        assert changes == [1, 0]

    def test_same_source_registers_once(self):
        registry = InspectionRegistry()
        source = object()
        first, _ = registry.register("a", source)
        second, _ = registry.register("b", source)
        assert first == second
        assert len(registry) == 1

    def test_closed_registry_rejects_sources(self):
        registry = InspectionRegistry()
        registry.register("a", object())
        registry.close()
        assert len(registry) == 0
        with pytest.raises(RuntimeError):
            registry.register("b", object())


class TestEventLogs:
    def test_logs_are_bounded(self):
        registry = InspectionRegistry(max_logs=3)
        source_id, _ = registry.register("rt", object())
        for i in range(5):
            registry.record(source_id, "tick", i)
        assert [log.data for log in registry.get_event_logs(source_id)] == [2, 3, 4]

    def test_event_listener_is_primed_and_updated(self):
        registry = InspectionRegistry()
        source_id, _ = registry.register("rt", object())
        registry.record(source_id, "before")
        batches = []
        unsubscribe = registry.subscribe_to_events(source_id, lambda logs: batches.append([l.event for l in logs]))
        registry.record(source_id, "after")
        unsubscribe()
        registry.record(source_id, "ignored")
        assert batches == [["before"], ["before", "after"]]

    def test_clear_logs(self):
        registry = InspectionRegistry()
        a, _ = registry.register("a", object())
        b, _ = registry.register("b", object())
        registry.record(a, "x")
        registry.record(b, "y")
        registry.clear_event_logs(a)
        assert registry.get_event_logs(a) == []
        assert len(registry.get_event_logs(b)) == 1
        registry.clear_all_event_logs()
        assert registry.get_event_logs(b) == []

    def test_record_for_unknown_source_is_ignored(self):
        registry = InspectionRegistry()
        registry.record(99, "x")
        assert registry.get_event_logs(99) == []

    def test_failing_listener_does_not_break_recording(self):
        registry = InspectionRegistry()
        source_id, _ = registry.register("rt", object())

        def bad(logs) -> None:
            if logs:
                raise RuntimeError("listener bug")

        registry.subscribe_to_events(source_id, bad)
        registry.record(source_id, "x")
        assert len(registry.get_event_logs(source_id)) == 1
