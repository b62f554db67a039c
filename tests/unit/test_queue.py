"""Tests for assistant_transport.core.queue: the two-stage command queue."""

from __future__ import annotations

import pytest

from assistant_transport.core.queue import CommandQueue
from assistant_transport.types.commands import AddMessage, AddToolResult, TextPart
from assistant_transport.types.errors import NothingToSend, QueueStateError


def _msg(text: str) -> AddMessage:
    return AddMessage(parts=(TextPart(text=text),))


class TestEnqueueAndFlush:
    def test_flush_preserves_enqueue_order(self):
        queue = CommandQueue()
        commands = [_msg("a"), _msg("b"), AddToolResult("tc1", "echo", {"ok": True}), _msg("c")]
        for cmd in commands:
            queue.enqueue(cmd)

        flushed = queue.flush()
        assert flushed == commands
        assert queue.queued == ()
        assert queue.in_transit == tuple(commands)

    def test_flush_empty_signals_nothing_to_send(self):
        queue = CommandQueue()
        with pytest.raises(NothingToSend):
            queue.flush()

    def test_flush_while_in_transit_is_caller_error(self):
        queue = CommandQueue()
        queue.enqueue(_msg("a"))
        queue.flush()
        queue.enqueue(_msg("b"))
        with pytest.raises(QueueStateError):
            queue.flush()

    def test_mark_delivered_clears_in_transit_only(self):
        queue = CommandQueue()
        queue.enqueue(_msg("a"))
        queue.flush()
        queue.enqueue(_msg("b"))
        queue.mark_delivered()
        assert queue.in_transit == ()
        assert queue.queued == (_msg("b"),)


class TestReset:
    def test_reset_restores_full_order(self):
        queue = CommandQueue()
        first, second, third = _msg("1"), _msg("2"), _msg("3")
        queue.enqueue(first)
        queue.enqueue(second)
        queue.flush()
        queue.enqueue(third)
        before = queue.pending_commands()

        queue.reset()
        assert queue.in_transit == ()
        assert list(queue.queued) == before == [first, second, third]

    def test_rolled_back_batch_is_resent_first(self):
        queue = CommandQueue()
        sent = []
        for i in range(3):
            queue.enqueue(_msg(str(i)))
            queue.enqueue(_msg(f"{i}b"))
            batch = queue.flush()
            if i == 1:
                queue.reset()
                continue
            sent.extend(batch)
            queue.mark_delivered()
        texts = [c.parts[0].text for c in sent]
        assert texts == ["0", "0b", "1", "1b", "2", "2b"]

    def test_reset_without_in_transit_is_noop(self):
        queue = CommandQueue()
        queue.enqueue(_msg("a"))
        queue.reset()
        assert queue.queued == (_msg("a"),)


class TestNotification:
    def test_on_queue_fires_once_per_backlog(self):
        calls = []
        queue = CommandQueue(on_queue=lambda: calls.append(1))
        queue.enqueue(_msg("a"))
        queue.enqueue(_msg("b"))
        assert len(calls) == 1

        queue.flush()
        queue.enqueue(_msg("c"))
        assert len(calls) == 2

    def test_reset_rearms_notification(self):
        calls = []
        queue = CommandQueue(on_queue=lambda: calls.append(1))
        queue.enqueue(_msg("a"))
        queue.flush()
        queue.enqueue(_msg("b"))
        assert len(calls) == 2
        queue.reset()
        queue.enqueue(_msg("c"))
        assert len(calls) == 3
        assert [c.parts[0].text for c in queue.queued] == ["a", "b", "c"]

    def test_on_change_receives_snapshots(self):
        states = []
        queue = CommandQueue(on_change=states.append)
        queue.enqueue(_msg("a"))
        queue.flush()
        queue.mark_delivered()
        assert [len(s.queued) for s in states] == [1, 0, 0]
        assert [len(s.in_transit) for s in states] == [0, 1, 0]

    def test_pending_commands_is_in_transit_then_queued(self):
        queue = CommandQueue()
        queue.enqueue(_msg("a"))
        queue.flush()
        queue.enqueue(_msg("b"))
        assert queue.pending_commands() == [_msg("a"), _msg("b")]
        assert len(queue) == 2
