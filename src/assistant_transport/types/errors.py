"""Exception hierarchy for the transport runtime."""

from __future__ import annotations


class TransportRuntimeError(Exception):
    """Base class for all runtime errors."""


class DecodeError(TransportRuntimeError):
    """Malformed frame data on the inbound stream."""


class ProtocolViolation(TransportRuntimeError):
    """A frame broke a protocol invariant (e.g. non-append-only argsText)."""


class TransportError(TransportRuntimeError):
    """The outbound request failed or returned a non-OK response."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class RemoteError(TransportRuntimeError):
    """The endpoint sent an error frame."""


class RunAborted(TransportRuntimeError):
    """The run observed its cancellation token."""


class NothingToSend(TransportRuntimeError):
    """A run was started with an empty command queue."""


class QueueStateError(TransportRuntimeError):
    """The command queue was driven out of order by its caller."""
