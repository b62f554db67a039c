"""MessageAccumulator: folds protocol frames into messages plus agent state."""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass, replace
from typing import Any

from assistant_transport.stream.state import apply_state_operations
from assistant_transport.types.errors import ProtocolViolation, RemoteError
from assistant_transport.types.frames import (
    ErrorFrame,
    FinishMessage,
    Frame,
    ImageFrame,
    StartMessage,
    StateSnapshot,
    StateUpdate,
    TextDelta,
    ToolCallBegin,
    ToolCallDelta,
    ToolCallFrame,
    ToolResultFrame,
)
from assistant_transport.types.messages import (
    Content,
    ImageContent,
    Message,
    TextContent,
    ToolCallContent,
)

logger = logging.getLogger(__name__)


def new_message_id() -> str:
    """Generate a new message ID."""
    return uuid.uuid4().hex[:12]


def create_initial_message(message_id: str | None = None) -> Message:
    """Return the empty assistant message a run starts from."""
    return Message(id=message_id or new_message_id(), role="assistant", status="running")


@dataclass(frozen=True, slots=True)
class AccumulatorSnapshot:
    """Messages and agent state after one frame has been applied."""

    messages: tuple[Message, ...]
    state: Any
    state_changed: bool = False
    frame: Frame | None = None

    @property
    def message(self) -> Message:
        """The message currently being streamed."""
        return self.messages[-1]


class MessageAccumulator:
    """Applies frames strictly in arrival order.

    Parameters
    ----------
    state:
        Last-known agent state.  Replaced only by a state frame whose value
        differs from the current one.
    initial_message:
        Seed message; defaults to an empty running assistant message.
    on_state_change:
        Called once, on the first frame that changes the agent state.
    """

    def __init__(
        self,
        state: Any = None,
        *,
        initial_message: Message | None = None,
        on_state_change: Callable[[], None] | None = None,
    ) -> None:
        self._messages: list[Message] = [initial_message or create_initial_message()]
        self._state = state
        self._on_state_change = on_state_change
        self._state_changed = False
        # tool_call_id -> (message index, content index)
        self._tool_calls: dict[str, tuple[int, int]] = {}
        for idx, part in enumerate(self._messages[0].content):
            if isinstance(part, ToolCallContent):
                self._tool_calls[part.tool_call_id] = (0, idx)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def state(self) -> Any:
        return self._state

    @property
    def state_changed(self) -> bool:
        """True once any frame has changed the agent state."""
        return self._state_changed

    def snapshot(self, *, state_changed: bool = False, frame: Frame | None = None) -> AccumulatorSnapshot:
        return AccumulatorSnapshot(
            messages=tuple(self._messages),
            state=self._state,
            state_changed=state_changed,
            frame=frame,
        )

    # ------------------------------------------------------------------
    # Folding
    # ------------------------------------------------------------------

    async def accumulate(self, frames: AsyncIterable[Frame]) -> AsyncIterator[AccumulatorSnapshot]:
        """Apply each frame as it arrives, yielding a snapshot after each."""
        async for frame in frames:
            yield self.apply(frame)

    def apply(self, frame: Frame) -> AccumulatorSnapshot:
        """Apply a single frame and return the resulting snapshot."""
        state_changed = False
        match frame:
            case TextDelta(text=text):
                self._append_text(text)
            case ImageFrame(image=image):
                self._append_part(ImageContent(image=image))
            case ToolCallBegin(tool_call_id=tid, tool_name=name):
                if tid in self._tool_calls:
                    raise ProtocolViolation(f"Tool call {tid} was already started")
                self._open_tool_call(tid, name, "")
            case ToolCallDelta(tool_call_id=tid, args_text_delta=delta):
                part = self._get_tool_call(tid)
                self._update_tool_call(tid, replace(part, args_text=part.args_text + delta))
            case ToolCallFrame(tool_call_id=tid, tool_name=name, args_text=args_text):
                self._apply_full_args(tid, name, args_text)
            case ToolResultFrame():
                part = self._get_tool_call(frame.tool_call_id)
                self._update_tool_call(
                    frame.tool_call_id,
                    replace(
                        part,
                        result=frame.result,
                        is_error=frame.is_error,
                        artifact=frame.artifact,
                        has_result=True,
                    ),
                )
            case StateSnapshot(state=new_state):
                state_changed = self._replace_state(new_state)
            case StateUpdate(operations=ops):
                state_changed = self._replace_state(apply_state_operations(self._state, ops))
            case StartMessage(message_id=mid):
                self._start_message(mid)
            case FinishMessage():
                self._messages[-1] = replace(self._messages[-1], status="complete")
            case ErrorFrame(error=error):
                self._messages[-1] = replace(self._messages[-1], status="incomplete")
                raise RemoteError(error)
            case _:
                raise ProtocolViolation(f"Unsupported frame: {frame!r}")
        return self.snapshot(state_changed=state_changed, frame=frame)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _append_part(self, part: Content) -> int:
        current = self._messages[-1]
        self._messages[-1] = replace(current, content=(*current.content, part))
        return len(current.content)

    def _append_text(self, text: str) -> None:
        current = self._messages[-1]
        if current.content and isinstance(current.content[-1], TextContent):
            last = current.content[-1]
            merged = replace(last, text=last.text + text)
            self._messages[-1] = replace(current, content=(*current.content[:-1], merged))
        else:
            self._append_part(TextContent(text=text))

    def _open_tool_call(self, tool_call_id: str, tool_name: str, args_text: str) -> None:
        idx = self._append_part(
            ToolCallContent(tool_call_id=tool_call_id, tool_name=tool_name, args_text=args_text)
        )
        self._tool_calls[tool_call_id] = (len(self._messages) - 1, idx)

    def _get_tool_call(self, tool_call_id: str) -> ToolCallContent:
        location = self._tool_calls.get(tool_call_id)
        if location is None:
            raise ProtocolViolation(f"Unknown tool call: {tool_call_id}")
        msg_idx, part_idx = location
        part = self._messages[msg_idx].content[part_idx]
        if not isinstance(part, ToolCallContent):
            raise ProtocolViolation(f"Content at tool call {tool_call_id} is not a tool call")
        return part

    def _update_tool_call(self, tool_call_id: str, part: ToolCallContent) -> None:
        msg_idx, part_idx = self._tool_calls[tool_call_id]
        message = self._messages[msg_idx]
        content = list(message.content)
        content[part_idx] = part
        self._messages[msg_idx] = replace(message, content=tuple(content))

    def _apply_full_args(self, tool_call_id: str, tool_name: str, args_text: str) -> None:
        if tool_call_id not in self._tool_calls:
            self._open_tool_call(tool_call_id, tool_name, args_text)
            return
        part = self._get_tool_call(tool_call_id)
        if part.tool_name != tool_name:
            raise ProtocolViolation(
                f"Tool call {tool_call_id} renamed from {part.tool_name!r} to {tool_name!r}"
            )
        if not args_text.startswith(part.args_text):
            raise ProtocolViolation(
                f"Tool call argsText can only be appended, not updated: "
                f"{args_text!r} does not start with {part.args_text!r}"
            )
        self._update_tool_call(tool_call_id, replace(part, args_text=args_text))

    def _start_message(self, message_id: str | None) -> None:
        current = self._messages[-1]
        if not current.content:
            if message_id is not None:
                self._messages[-1] = replace(current, id=message_id)
            return
        self._messages[-1] = replace(current, status="complete")
        self._messages.append(create_initial_message(message_id))

    def _replace_state(self, new_state: Any) -> bool:
        if new_state == self._state:
            return False
        self._state = new_state
        if not self._state_changed:
            self._state_changed = True
            logger.debug("First agent-state change observed")
            if self._on_state_change is not None:
                self._on_state_change()
        return True
