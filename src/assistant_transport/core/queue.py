"""CommandQueue: ordered buffer of outbound commands awaiting transmission."""

from __future__ import annotations

import logging
from collections.abc import Callable

from assistant_transport.types.commands import Command, QueueState
from assistant_transport.types.errors import NothingToSend, QueueStateError

logger = logging.getLogger(__name__)


class CommandQueue:
    """Two-stage FIFO of commands: ``queued`` then ``in_transit``.

    A command lives in exactly one of the two sequences until it is
    delivered.  ``queued`` only grows at the tail; ``in_transit`` is only
    ever replaced or cleared wholesale.

    Usage::

        queue = CommandQueue(on_queue=run_manager.schedule)
        queue.enqueue(AddMessage(parts=(TextPart("hi"),)))
        batch = queue.flush()      # -> in transit
        queue.mark_delivered()     # acknowledged
    """

    def __init__(
        self,
        on_queue: Callable[[], None] | None = None,
        on_change: Callable[[QueueState], None] | None = None,
    ) -> None:
        self._queued: list[Command] = []
        self._in_transit: list[Command] = []
        self._on_queue = on_queue
        self._on_change = on_change
        # Set once on_queue fired for the current backlog; re-armed by flush/reset.
        self._notified = False

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> QueueState:
        return QueueState(queued=tuple(self._queued), in_transit=tuple(self._in_transit))

    @property
    def queued(self) -> tuple[Command, ...]:
        return tuple(self._queued)

    @property
    def in_transit(self) -> tuple[Command, ...]:
        return tuple(self._in_transit)

    def pending_commands(self) -> list[Command]:
        """Return ``in_transit ++ queued`` for optimistic projection."""
        return [*self._in_transit, *self._queued]

    def __len__(self) -> int:
        return len(self._queued) + len(self._in_transit)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def enqueue(self, command: Command) -> None:
        """Append *command* and notify once on the empty -> non-empty edge."""
        self._queued.append(command)
        logger.debug("Enqueued %s (queued=%d)", type(command).__name__, len(self._queued))
        self._changed()
        if not self._notified:
            self._notified = True
            if self._on_queue is not None:
                self._on_queue()

    def flush(self) -> list[Command]:
        """Move every queued command into transit and return them in order.

        Raises :class:`NothingToSend` when nothing is queued and
        :class:`QueueStateError` when a previous batch is still in transit.
        """
        if self._in_transit:
            raise QueueStateError(
                f"Cannot flush: {len(self._in_transit)} command(s) still in transit"
            )
        if not self._queued:
            raise NothingToSend("No commands to send")
        batch = self._queued
        self._in_transit = list(batch)
        self._queued = []
        self._notified = False
        logger.debug("Flushed %d command(s)", len(batch))
        self._changed()
        return list(batch)

    def mark_delivered(self) -> None:
        """Drop the in-transit batch; it has been acknowledged."""
        if not self._in_transit:
            return
        logger.debug("Delivered %d command(s)", len(self._in_transit))
        self._in_transit = []
        self._changed()

    def reset(self) -> None:
        """Put the in-transit batch back in front of the queue.

        The next :meth:`enqueue` notifies again, so a rolled-back backlog is
        sent together with whatever the user adds next.
        """
        self._notified = False
        if not self._in_transit:
            return
        logger.debug("Requeued %d in-transit command(s)", len(self._in_transit))
        self._queued = [*self._in_transit, *self._queued]
        self._in_transit = []
        self._changed()

    def clear(self) -> None:
        """Drop everything (session teardown)."""
        self._queued = []
        self._in_transit = []
        self._notified = False
        self._changed()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self.state)

    def __repr__(self) -> str:
        return f"CommandQueue(queued={len(self._queued)}, in_transit={len(self._in_transit)})"
