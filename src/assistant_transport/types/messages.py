"""Message and content-part types produced by the message accumulator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class TextContent:
    """A run of text inside a message."""

    text: str
    type: str = "text"


@dataclass(frozen=True, slots=True)
class ImageContent:
    """An image inside a message."""

    image: str
    type: str = "image"


@dataclass(frozen=True, slots=True)
class ToolCallContent:
    """A tool call whose arguments stream in as JSON text.

    ``args_text`` only ever grows by suffix for a given ``tool_call_id``.
    """

    tool_call_id: str
    tool_name: str
    args_text: str = ""
    result: Any = None
    is_error: bool = False
    artifact: Any = None
    has_result: bool = False
    type: str = "tool-call"


Content = TextContent | ImageContent | ToolCallContent


@dataclass(frozen=True, slots=True)
class Message:
    """A single message in the thread."""

    id: str
    role: str  # "user", "assistant"
    content: tuple[Content, ...] = ()
    status: str = "complete"  # "running", "complete", "incomplete"

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(c.text for c in self.content if isinstance(c, TextContent))

    @property
    def tool_calls(self) -> list[ToolCallContent]:
        return [c for c in self.content if isinstance(c, ToolCallContent)]


def iter_tool_calls(messages: list[Message] | tuple[Message, ...]) -> list[ToolCallContent]:
    """Return every tool-call part across *messages*, in order."""
    return [tc for m in messages for tc in m.tool_calls]
