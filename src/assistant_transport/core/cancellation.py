"""Cooperative cancellation tokens shared by runs and tool executions."""

from __future__ import annotations

import asyncio

from assistant_transport.types.errors import RunAborted


class CancellationToken:
    """A one-shot cancellation signal.

    Cancellation is cooperative: holders poll :attr:`cancelled`, call
    :meth:`raise_if_cancelled` at suspension points, or ``await wait()``.
    Once fired a token never resets; callers that need a fresh signal
    create a new token.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunAborted(self._reason or "cancelled")

    async def wait(self) -> None:
        await self._event.wait()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
