"""RunManager: serialises network round-trips and owns run cancellation."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from assistant_transport.core.callbacks import call_safely
from assistant_transport.core.cancellation import CancellationToken
from assistant_transport.observability.metrics import record_run
from assistant_transport.observability.tracing import span
from assistant_transport.types.errors import NothingToSend, RunAborted

logger = logging.getLogger(__name__)

RunCallback = Callable[[CancellationToken], Awaitable[None]]


class RunOutcome(Enum):
    """Terminal outcome of a single run."""

    SUCCESS = "success"
    ERROR = "error"
    ABORTED = "aborted"
    NOOP = "noop"  # nothing was queued


class RunManager:
    """Two-state (idle / running) scheduler for runs.

    :meth:`schedule` starts a run when idle.  Calls made while a run is in
    flight collapse into a single follow-up run, started as soon as the
    current one succeeds or errors.  :meth:`cancel` fires the active run's
    token; an aborted run never triggers the follow-up.

    Parameters
    ----------
    on_run:
        ``async (token) -> None``.  Raises :class:`NothingToSend` when the
        queue was empty, which is treated as a silent no-op.
    on_finish, on_error, on_cancel:
        Outcome hooks.  ``on_error`` and ``on_cancel`` receive the exception.
    on_status_change:
        Called with the new ``is_running`` value on every transition.
    """

    def __init__(
        self,
        on_run: RunCallback,
        *,
        on_finish: Callable[[], Any] | None = None,
        on_error: Callable[[BaseException], Any] | None = None,
        on_cancel: Callable[[BaseException], Any] | None = None,
        on_status_change: Callable[[bool], None] | None = None,
    ) -> None:
        self._on_run = on_run
        self._on_finish = on_finish
        self._on_error = on_error
        self._on_cancel = on_cancel
        self._on_status_change = on_status_change
        self._task: asyncio.Task[RunOutcome] | None = None
        self._token: CancellationToken | None = None
        self._reschedule = False
        self._runs_started = 0

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None

    @property
    def runs_started(self) -> int:
        return self._runs_started

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def schedule(self) -> None:
        """Start a run now, or once the current run completes."""
        if self._task is not None:
            self._reschedule = True
            logger.debug("Run in flight; follow-up run requested")
            return
        self._start()

    def cancel(self, reason: str = "cancelled by user") -> None:
        """Signal the active run's cancellation token (if any)."""
        self._reschedule = False
        if self._token is not None:
            logger.debug("Cancelling active run: %s", reason)
            self._token.cancel(reason)

    async def wait_idle(self) -> None:
        """Wait until no run is in flight, including follow-up runs."""
        while self._task is not None:
            await asyncio.shield(self._task)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start(self) -> None:
        token = CancellationToken()
        self._token = token
        self._runs_started += 1
        self._task = asyncio.get_running_loop().create_task(self._drive(token))
        self._set_status(True)

    async def _drive(self, token: CancellationToken) -> RunOutcome:
        started = time.monotonic()
        error: BaseException | None = None

        with span("assistant_transport.run", {"run.index": self._runs_started}) as s:
            try:
                await self._race(token)
                outcome = RunOutcome.SUCCESS
            except NothingToSend:
                outcome = RunOutcome.NOOP
            except RunAborted as exc:
                outcome = RunOutcome.ABORTED
                error = exc
            except Exception as exc:
                if token.cancelled:
                    # Errors raised while tearing down a cancelled run are
                    # reported as the cancellation they stem from.
                    outcome = RunOutcome.ABORTED
                    error = RunAborted(token.reason or "cancelled")
                else:
                    outcome = RunOutcome.ERROR
                    error = exc
                    s.record_exception(exc)
            s.set_attribute("run.outcome", outcome.value)

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.debug("Run finished: %s in %.1fms", outcome.value, elapsed_ms)
        record_run(outcome.value, elapsed_ms)

        # Back to idle before callbacks so they observe is_running == False.
        self._task = None
        self._token = None
        reschedule = self._reschedule and outcome in (RunOutcome.SUCCESS, RunOutcome.ERROR)
        self._reschedule = False

        if outcome is RunOutcome.SUCCESS:
            await call_safely(self._on_finish)
        elif outcome is RunOutcome.ERROR:
            await call_safely(self._on_error, error)
        elif outcome is RunOutcome.ABORTED:
            await call_safely(self._on_cancel, error)

        if reschedule and self._task is None:
            self._start()
        elif self._task is None:
            self._set_status(False)
        return outcome

    async def _race(self, token: CancellationToken) -> None:
        """Run ``on_run`` until it completes or *token* fires."""
        work = asyncio.ensure_future(self._on_run(token))
        waiter = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()

        if work.done():
            # Propagates the run's own outcome (including RunAborted).
            work.result()
            return

        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.debug("Run raised while being cancelled", exc_info=True)
        raise RunAborted(token.reason or "cancelled")

    def _set_status(self, running: bool) -> None:
        if self._on_status_change is not None:
            self._on_status_change(running)

    def __repr__(self) -> str:
        state = "running" if self.is_running else "idle"
        return f"RunManager({state}, runs={self._runs_started})"
