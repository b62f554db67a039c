"""Terminal rendering of runtime snapshots."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from assistant_transport.types.frames import Frame
from assistant_transport.types.messages import Message, ToolCallContent


class StreamPrinter:
    """Prints the growing text of the message being streamed.

    Snapshots always carry the full text so far; only the unseen suffix is
    written.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()
        self._printed: dict[str, int] = {}
        self._tools_shown: set[str] = set()

    def update(self, messages: list[Message]) -> None:
        for message in messages:
            if message.role != "assistant":
                continue
            text = message.text
            seen = self._printed.get(message.id, 0)
            if len(text) > seen:
                self._console.print(text[seen:], end="", highlight=False, markup=False)
                self._printed[message.id] = len(text)
            for part in message.tool_calls:
                self._show_tool(part)

    def _show_tool(self, part: ToolCallContent) -> None:
        key = f"{part.tool_call_id}:{part.has_result}"
        if key in self._tools_shown:
            return
        if not part.has_result and not part.args_text:
            return
        self._tools_shown.add(key)
        if part.has_result:
            style = "red" if part.is_error else "green"
            self._console.print(f"\n[{style}][Result {part.tool_name}][/{style}] {part.result!r:.200}")
        else:
            self._console.print(f"\n[cyan][Tool: {part.tool_name}][/cyan]")

    def finish(self, messages: list[Message], *, markdown: bool = False) -> None:
        self._console.print()
        if markdown and messages and messages[-1].role == "assistant":
            self._console.print(Markdown(messages[-1].text))


def frames_table(frames: list[Frame]) -> Table:
    """Tabulate decoded frames for inspection."""
    table = Table(title="Frames")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Frame", style="cyan")
    table.add_column("Payload")
    for idx, frame in enumerate(frames, 1):
        payload: dict[str, Any] = {
            k: getattr(frame, k) for k in frame.__dataclass_fields__  # type: ignore[union-attr]
        }
        table.add_row(str(idx), type(frame).__name__, json.dumps(payload, default=str)[:120])
    return table
