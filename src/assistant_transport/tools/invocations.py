"""ToolInvocationController: runs client-side tools for streamed tool calls.

Watches the tool-call parts of every message snapshot.  Each new
``tool_call_id`` gets an argument stream that receives ``args_text`` deltas;
once the accumulated text parses as JSON the stream closes and the tool
runs.  Its outcome is reported exactly once as an :class:`AddToolResult`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from collections.abc import Callable, Iterable
from typing import Any

import anyio
from anyio.abc import ObjectReceiveStream, ObjectSendStream

from assistant_transport.core.cancellation import CancellationToken
from assistant_transport.observability.metrics import record_tool_call
from assistant_transport.observability.tracing import span
from assistant_transport.tools.manager import ToolManager
from assistant_transport.types.commands import AddToolResult
from assistant_transport.types.errors import ProtocolViolation
from assistant_transport.types.messages import Message, ToolCallContent, iter_tool_calls
from assistant_transport.types.tools import ToolContext

logger = logging.getLogger(__name__)


def is_args_text_complete(args_text: str) -> bool:
    """True when *args_text* parses as a self-contained JSON value."""
    try:
        json.loads(args_text)
    except ValueError:
        return False
    return True


class ToolCallStream:
    """Argument text stream for a single tool call."""

    def __init__(self, tool_call_id: str, tool_name: str) -> None:
        self.tool_call_id = tool_call_id
        self.tool_name = tool_name
        self.args_text = ""
        send: ObjectSendStream[str]
        recv: ObjectReceiveStream[str]
        send, recv = anyio.create_memory_object_stream[str](max_buffer_size=math.inf)
        self._send = send
        self._recv = recv
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def append(self, delta: str) -> None:
        if self._closed:
            raise ProtocolViolation(f"Tool call {self.tool_call_id} received args after completion")
        if not delta:
            return
        self.args_text += delta
        self._send.send_nowait(delta)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._send.close()

    async def read_all(self) -> str:
        """Wait for the stream to close and return the full argument text."""
        chunks: list[str] = []
        async with self._recv:
            async for delta in self._recv:
                chunks.append(delta)
        return "".join(chunks)


class ToolInvocationController:
    """Bridges accumulated tool-call parts to local tool execution.

    Parameters
    ----------
    get_tools:
        Returns the current :class:`ToolManager` (tools may change between
        runs), or None when no client-side tools are configured.
    on_result:
        Receives each :class:`AddToolResult`; normally ``queue.enqueue``.
    """

    def __init__(
        self,
        get_tools: Callable[[], ToolManager | None],
        on_result: Callable[[AddToolResult], None],
    ) -> None:
        self._get_tools = get_tools
        self._on_result = on_result
        self._token = CancellationToken()
        self._ignored: set[str] = set()
        self._streams: dict[str, ToolCallStream] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._executing: set[str] = set()

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def cancel_token(self) -> CancellationToken:
        """Token handed to tools started from now on."""
        return self._token

    @property
    def in_flight(self) -> set[str]:
        """IDs of tool calls still waiting for args or executing."""
        return set(self._tasks)

    def is_ignored(self, tool_call_id: str) -> bool:
        return tool_call_id in self._ignored

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def ignore_existing(self, messages: Iterable[Message]) -> None:
        """Mark every tool call in the initial history as already resolved."""
        for part in iter_tool_calls(list(messages)):
            self._ignored.add(part.tool_call_id)

    def observe(self, messages: Iterable[Message]) -> None:
        """Process the tool-call parts of a new message snapshot.

        Raises :class:`ProtocolViolation` when a known call's ``args_text``
        is not an extension of what was seen before.
        """
        for part in iter_tool_calls(list(messages)):
            if part.tool_call_id in self._ignored:
                continue
            stream = self._streams.get(part.tool_call_id)
            if stream is None:
                if part.has_result:
                    # Resolved remotely before we ever saw it streaming.
                    self._ignored.add(part.tool_call_id)
                    continue
                self._open(part)
            else:
                self._advance(stream, part)

    def _open(self, part: ToolCallContent) -> None:
        stream = ToolCallStream(part.tool_call_id, part.tool_name)
        self._streams[part.tool_call_id] = stream
        stream.append(part.args_text)
        logger.debug("Opened tool call %s (%s)", part.tool_call_id, part.tool_name)
        self._tasks[part.tool_call_id] = asyncio.get_running_loop().create_task(
            self._run(stream),
            name=f"tool:{part.tool_name}:{part.tool_call_id}",
        )
        if is_args_text_complete(stream.args_text):
            stream.close()

    def _advance(self, stream: ToolCallStream, part: ToolCallContent) -> None:
        if part.args_text == stream.args_text:
            return
        if not part.args_text.startswith(stream.args_text):
            raise ProtocolViolation(
                f"Tool call argsText can only be appended, not updated: "
                f"{part.args_text!r} does not start with {stream.args_text!r}"
            )
        stream.append(part.args_text[len(stream.args_text):])
        if is_args_text_complete(stream.args_text):
            stream.close()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _run(self, stream: ToolCallStream) -> None:
        try:
            args_text = await stream.read_all()
            await self._execute(stream.tool_call_id, stream.tool_name, args_text)
        except Exception:
            logger.exception("Tool call %s failed outside the tool", stream.tool_call_id)
        finally:
            self._tasks.pop(stream.tool_call_id, None)
            self._executing.discard(stream.tool_call_id)

    async def _execute(self, tool_call_id: str, tool_name: str, args_text: str) -> None:
        tools = self._get_tools()
        if tools is None or tool_name not in tools:
            # Not a client-side tool; the endpoint or a human resolves it.
            logger.info("No client-side tool %r for call %s", tool_name, tool_call_id)
            return

        token = self._token
        self._executing.add(tool_call_id)
        args: Any = json.loads(args_text) if args_text else {}

        with span("assistant_transport.tool", {"tool.name": tool_name, "tool.call_id": tool_call_id}):
            if not isinstance(args, dict):
                command = AddToolResult(
                    tool_call_id=tool_call_id,
                    tool_name=tool_name,
                    result=f"Tool arguments must be a JSON object, got {type(args).__name__}",
                    is_error=True,
                )
            else:
                ctx = ToolContext(tool_call_id=tool_call_id, tool_name=tool_name, cancel_token=token)
                result = await tools.execute(tool_name, args, ctx)
                command = AddToolResult(
                    tool_call_id=tool_call_id,
                    tool_name=tool_name,
                    result=result.result,
                    is_error=result.is_error,
                    artifact=result.artifact,
                )

        record_tool_call(tool_name, is_error=command.is_error)
        if token.cancelled:
            logger.info("Dropping result of aborted tool call %s", tool_call_id)
            return
        logger.debug("Tool call %s finished (error=%s)", tool_call_id, command.is_error)
        self._on_result(command)

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def abort(self) -> None:
        """Tell running tools to stop and re-arm a fresh token.

        Calls still waiting for their arguments are abandoned; they will
        never execute.
        """
        self._token.cancel("tool invocations aborted")
        self._token = CancellationToken()
        for tool_call_id, task in list(self._tasks.items()):
            if tool_call_id in self._executing:
                continue
            stream = self._streams[tool_call_id]
            self._ignored.add(tool_call_id)
            self._tasks.pop(tool_call_id)
            task.cancel()
            logger.debug("Abandoned tool call %s with incomplete args", stream.tool_call_id)

    async def wait_idle(self) -> None:
        """Wait for every tool call whose arguments are complete to settle."""
        while True:
            ready = [t for tid, t in self._tasks.items() if self._streams[tid].closed]
            if not ready:
                return
            await asyncio.gather(*ready, return_exceptions=True)

    async def aclose(self) -> None:
        """Abort everything and wait for the tasks to unwind."""
        self.abort()
        for task in self._tasks.values():
            task.cancel()
        await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        self._tasks.clear()
