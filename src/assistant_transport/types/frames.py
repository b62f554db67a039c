"""Protocol frames decoded from the inbound data stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class TextDelta:
    """Append text to the current message."""

    text: str


@dataclass(frozen=True, slots=True)
class ImageFrame:
    """Append an image part to the current message."""

    image: str


@dataclass(frozen=True, slots=True)
class ToolCallBegin:
    """Open a new tool-call part."""

    tool_call_id: str
    tool_name: str


@dataclass(frozen=True, slots=True)
class ToolCallDelta:
    """Append a chunk of JSON argument text to an open tool call."""

    tool_call_id: str
    args_text_delta: str


@dataclass(frozen=True, slots=True)
class ToolCallFrame:
    """Full argument text for a tool call (opens the call if needed)."""

    tool_call_id: str
    tool_name: str
    args_text: str


@dataclass(frozen=True, slots=True)
class ToolResultFrame:
    """Result for a tool call, produced by the remote endpoint."""

    tool_call_id: str
    result: Any = None
    is_error: bool = False
    artifact: Any = None


@dataclass(frozen=True, slots=True)
class StateSnapshot:
    """Replace the agent state wholesale."""

    state: Any


@dataclass(frozen=True, slots=True)
class StateOp:
    """One incremental agent-state operation."""

    type: str  # "set" or "append-text"
    path: tuple[str | int, ...]
    value: Any = None


@dataclass(frozen=True, slots=True)
class StateUpdate:
    """Apply a list of operations to the agent state."""

    operations: tuple[StateOp, ...] = ()


@dataclass(frozen=True, slots=True)
class StartMessage:
    """Begin a new assistant message."""

    message_id: str | None = None


@dataclass(frozen=True, slots=True)
class FinishMessage:
    """The current message is complete."""

    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ErrorFrame:
    """The remote endpoint reported an error mid-stream."""

    error: str


Frame = (
    TextDelta
    | ImageFrame
    | ToolCallBegin
    | ToolCallDelta
    | ToolCallFrame
    | ToolResultFrame
    | StateSnapshot
    | StateUpdate
    | StartMessage
    | FinishMessage
    | ErrorFrame
)
