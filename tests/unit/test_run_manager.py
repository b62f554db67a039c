"""Tests for assistant_transport.core.run_manager: run scheduling and cancellation."""

from __future__ import annotations

import asyncio

import pytest

from assistant_transport.core.cancellation import CancellationToken
from assistant_transport.core.run_manager import RunManager
from assistant_transport.types.errors import NothingToSend, RunAborted


class TestScheduling:
    @pytest.mark.asyncio
    async def test_single_run_finishes(self):
        finished = []

        async def on_run(token: CancellationToken) -> None:
            await asyncio.sleep(0)

        manager = RunManager(on_run, on_finish=lambda: finished.append(True))
        manager.schedule()
        assert manager.is_running
        await manager.wait_idle()
        assert not manager.is_running
        assert finished == [True]
        assert manager.runs_started == 1

    @pytest.mark.asyncio
    async def test_schedules_while_running_coalesce_into_one_follow_up(self):
        gate = asyncio.Event()
        runs = []

        async def on_run(token: CancellationToken) -> None:
            runs.append(len(runs))
            if len(runs) == 1:
                await gate.wait()

        manager = RunManager(on_run)
        manager.schedule()
        await asyncio.sleep(0)
        manager.schedule()
        manager.schedule()
        manager.schedule()
        gate.set()
        await manager.wait_idle()
        assert runs == [0, 1]

    @pytest.mark.asyncio
    async def test_nothing_to_send_is_silent(self):
        events = []

        async def on_run(token: CancellationToken) -> None:
            raise NothingToSend("empty")

        manager = RunManager(
            on_run,
            on_finish=lambda: events.append("finish"),
            on_error=lambda exc: events.append("error"),
            on_cancel=lambda exc: events.append("cancel"),
        )
        manager.schedule()
        await manager.wait_idle()
        assert events == []
        assert not manager.is_running

    @pytest.mark.asyncio
    async def test_status_changes(self):
        statuses = []

        async def on_run(token: CancellationToken) -> None:
            await asyncio.sleep(0)

        manager = RunManager(on_run, on_status_change=statuses.append)
        manager.schedule()
        await manager.wait_idle()
        assert statuses == [True, False]


class TestErrors:
    @pytest.mark.asyncio
    async def test_error_reaches_on_error(self):
        errors = []

        async def on_run(token: CancellationToken) -> None:
            raise ValueError("broken")

        manager = RunManager(on_run, on_error=errors.append)
        manager.schedule()
        await manager.wait_idle()
        assert len(errors) == 1
        assert isinstance(errors[0], ValueError)

    @pytest.mark.asyncio
    async def test_follow_up_runs_after_error(self):
        gate = asyncio.Event()
        calls = []

        async def on_run(token: CancellationToken) -> None:
            calls.append(1)
            if len(calls) == 1:
                await gate.wait()
                raise ValueError("first run fails")

        manager = RunManager(on_run)
        manager.schedule()
        await asyncio.sleep(0)
        manager.schedule()
        gate.set()
        await manager.wait_idle()
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_break_manager(self):
        async def on_run(token: CancellationToken) -> None:
            return None

        def on_finish() -> None:
            raise RuntimeError("ui bug")

        manager = RunManager(on_run, on_finish=on_finish)
        manager.schedule()
        await manager.wait_idle()
        assert not manager.is_running


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_interrupts_blocked_run(self):
        cancelled = []
        started = asyncio.Event()

        async def on_run(token: CancellationToken) -> None:
            started.set()
            await asyncio.Event().wait()

        manager = RunManager(on_run, on_cancel=cancelled.append)
        manager.schedule()
        await started.wait()
        manager.cancel("stop")
        await manager.wait_idle()
        assert len(cancelled) == 1
        assert isinstance(cancelled[0], RunAborted)
        assert "stop" in str(cancelled[0])

    @pytest.mark.asyncio
    async def test_aborted_run_starts_no_follow_up(self):
        started = asyncio.Event()
        calls = []

        async def on_run(token: CancellationToken) -> None:
            calls.append(1)
            started.set()
            await token.wait()
            token.raise_if_cancelled()

        manager = RunManager(on_run)
        manager.schedule()
        await started.wait()
        manager.schedule()
        manager.cancel()
        await manager.wait_idle()
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_cancel_when_idle_is_noop(self):
        async def on_run(token: CancellationToken) -> None:
            return None

        manager = RunManager(on_run)
        manager.cancel()
        assert not manager.is_running
        assert manager.runs_started == 0


class TestCancellationToken:
    @pytest.mark.asyncio
    async def test_first_reason_wins(self):
        token = CancellationToken()
        token.cancel("first")
        token.cancel("second")
        assert token.cancelled
        assert token.reason == "first"
        with pytest.raises(RunAborted):
            token.raise_if_cancelled()
        await token.wait()
