"""Outbound command types queued for transmission to the agent endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class TextPart:
    """Plain text part of a user message."""

    text: str


@dataclass(frozen=True, slots=True)
class ImagePart:
    """Image part of a user message (URL or data URI)."""

    image: str


UserMessagePart = TextPart | ImagePart


@dataclass(frozen=True, slots=True)
class AddMessage:
    """Append a new message to the remote thread."""

    parts: tuple[UserMessagePart, ...] = ()
    role: str = "user"


@dataclass(frozen=True, slots=True)
class AddToolResult:
    """Report the outcome of a client-side tool call."""

    tool_call_id: str
    tool_name: str
    result: Any = None
    is_error: bool = False
    artifact: Any = None


Command = AddMessage | AddToolResult


@dataclass(frozen=True, slots=True)
class QueueState:
    """Immutable snapshot of the command queue."""

    queued: tuple[Command, ...] = ()
    in_transit: tuple[Command, ...] = ()


def _part_to_dict(part: UserMessagePart) -> dict[str, Any]:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    return {"type": "image", "image": part.image}


def command_to_dict(command: Command) -> dict[str, Any]:
    """Serialise a command into its wire representation."""
    if isinstance(command, AddMessage):
        return {
            "type": "add-message",
            "message": {
                "role": command.role,
                "parts": [_part_to_dict(p) for p in command.parts],
            },
        }
    data: dict[str, Any] = {
        "type": "add-tool-result",
        "toolCallId": command.tool_call_id,
        "toolName": command.tool_name,
        "result": command.result,
        "isError": command.is_error,
    }
    if command.artifact is not None:
        data["artifact"] = command.artifact
    return data
