"""AssistantTransportRuntime: drives one conversational session.

Owns the command queue, the run manager, the agent state, the message
history, and the tool invocation controller as named fields.  All mutation
happens on the event loop's single thread; network reads and tool
executions are the only suspension points.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

import httpx

from assistant_transport.core.callbacks import call_safely
from assistant_transport.core.cancellation import CancellationToken
from assistant_transport.core.queue import CommandQueue
from assistant_transport.core.run_manager import RunManager
from assistant_transport.core.transport import HttpTransport, build_request_body
from assistant_transport.devtools.registry import InspectionRegistry
from assistant_transport.stream.accumulator import MessageAccumulator, new_message_id
from assistant_transport.stream.decoder import decode_stream
from assistant_transport.tools.invocations import ToolInvocationController
from assistant_transport.tools.manager import ToolManager
from assistant_transport.types.commands import (
    AddMessage,
    AddToolResult,
    Command,
    TextPart,
    UserMessagePart,
)
from assistant_transport.types.config import ModelContext, TransportConfig
from assistant_transport.types.errors import QueueStateError
from assistant_transport.types.messages import (
    Content,
    ImageContent,
    Message,
    TextContent,
    ToolCallContent,
)

logger = logging.getLogger(__name__)

StateUpdater = Callable[[Any], Any]


@dataclass(slots=True)
class RollbackContext:
    """Handed to ``on_error`` / ``on_cancel`` so the caller can repair state."""

    commands: list[Command]
    update_state: Callable[[StateUpdater], None]


def _user_message(command: AddMessage) -> Message:
    content: list[Content] = []
    for part in command.parts:
        if isinstance(part, TextPart):
            content.append(TextContent(text=part.text))
        else:
            content.append(ImageContent(image=part.image))
    return Message(id=new_message_id(), role=command.role, content=tuple(content))


class AssistantTransportRuntime:
    """Public runtime surface consumed by the UI/projection layer.

    Usage::

        runtime = AssistantTransportRuntime(
            TransportConfig(api="http://localhost:8000/assistant"),
            tools=manager,
            on_error=lambda exc, ctx: print("run failed:", exc),
        )
        runtime.append_message("hi")
        await runtime.wait_idle()
        print(runtime.messages[-1].text)

    Parameters
    ----------
    config:
        Endpoint, headers, static body, and the initial agent state.
    tools:
        Client-side tools; tool calls for names not registered here are
        left for the endpoint or a human to resolve.
    context:
        A :class:`ModelContext` or a zero-argument callable returning one,
        evaluated at the start of every run.
    initial_messages:
        History restored from a previous session.  Tool calls in it are
        never executed again.
    converter:
        ``(state, pending_commands, is_running) -> view`` projection exposed
        through :meth:`view`.
    on_response, on_finish, on_error, on_cancel:
        Lifecycle callbacks (sync or async).
    client:
        Shared :class:`httpx.AsyncClient`.
    registry:
        Inspection registry to report events to.
    """

    def __init__(
        self,
        config: TransportConfig,
        *,
        tools: ToolManager | None = None,
        context: ModelContext | Callable[[], ModelContext] | None = None,
        initial_messages: list[Message] | None = None,
        converter: Callable[[Any, list[Command], bool], Any] | None = None,
        on_response: Callable[[httpx.Response], Any] | None = None,
        on_finish: Callable[[], Any] | None = None,
        on_error: Callable[[BaseException, RollbackContext], Any] | None = None,
        on_cancel: Callable[[RollbackContext], Any] | None = None,
        client: httpx.AsyncClient | None = None,
        registry: InspectionRegistry | None = None,
    ) -> None:
        self._config = config
        self._tool_manager = tools
        self._context = context
        self._converter = converter
        self._on_finish = on_finish
        self._on_error = on_error
        self._on_cancel = on_cancel

        self._state: Any = config.initial_state
        self._history: list[Message] = list(initial_messages or [])
        self._sent_messages: list[Message] = []
        self._run_messages: tuple[Message, ...] = ()
        self._accumulator: MessageAccumulator | None = None
        self._listeners: list[Callable[[], None]] = []

        self._queue = CommandQueue(on_queue=self._on_queue, on_change=lambda _s: self._notify())
        self._run_manager = RunManager(
            self._run,
            on_finish=self._handle_finish,
            on_error=self._handle_error,
            on_cancel=self._handle_cancel,
            on_status_change=lambda _running: self._notify(),
        )
        self._invocations = ToolInvocationController(
            get_tools=lambda: self._tool_manager,
            on_result=self._queue.enqueue,
        )
        self._invocations.ignore_existing(self._history)
        self._transport = HttpTransport(config, client=client, on_response=on_response)

        self._registry = registry
        self._registry_id: int | None = None
        self._unregister: Callable[[], None] | None = None
        if registry is not None:
            self._registry_id, self._unregister = registry.register("assistant-transport", self)

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def state(self) -> Any:
        """Last-known agent state."""
        return self._state

    @property
    def messages(self) -> list[Message]:
        """Committed history, then messages of the run in flight."""
        return [*self._history, *self._sent_messages, *self._run_messages]

    @property
    def is_running(self) -> bool:
        return self._run_manager.is_running

    @property
    def queue(self) -> CommandQueue:
        return self._queue

    @property
    def tools(self) -> ToolManager | None:
        return self._tool_manager

    @tools.setter
    def tools(self, manager: ToolManager | None) -> None:
        self._tool_manager = manager

    def pending_commands(self) -> list[Command]:
        return self._queue.pending_commands()

    def view(self) -> Any:
        """Project state + pending commands through the converter, if any."""
        if self._converter is None:
            return None
        return self._converter(self._state, self.pending_commands(), self.is_running)

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Call *listener* after every observable change; returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def enqueue(self, command: Command) -> None:
        """Queue *command*; a run is scheduled automatically."""
        self._record("enqueue", {"type": type(command).__name__})
        self._queue.enqueue(command)

    def append_message(self, message: str | list[UserMessagePart]) -> AddMessage:
        """Queue a user message given as text or explicit parts."""
        parts = (TextPart(text=message),) if isinstance(message, str) else tuple(message)
        command = AddMessage(parts=parts)
        self.enqueue(command)
        return command

    def add_tool_result(
        self,
        tool_call_id: str,
        tool_name: str,
        result: Any,
        *,
        is_error: bool = False,
        artifact: Any = None,
    ) -> AddToolResult:
        """Queue a tool result supplied by the user (human-in-the-loop tools)."""
        command = AddToolResult(
            tool_call_id=tool_call_id,
            tool_name=tool_name,
            result=result,
            is_error=is_error,
            artifact=artifact,
        )
        self.enqueue(command)
        return command

    def cancel(self) -> None:
        """Abort the run in flight and signal running tools to stop."""
        self._record("cancel")
        self._run_manager.cancel()
        self._invocations.abort()

    async def wait_idle(self) -> None:
        """Wait until no run is in flight and no tool result is pending."""
        while True:
            await self._run_manager.wait_idle()
            await self._invocations.wait_idle()
            # Yield so tool results can schedule their follow-up run.
            await asyncio.sleep(0)
            if not self._run_manager.is_running:
                return

    async def aclose(self) -> None:
        """Tear the session down."""
        self.cancel()
        await self._run_manager.wait_idle()
        await self._invocations.aclose()
        await self._transport.aclose()
        if self._unregister is not None:
            self._unregister()
            self._unregister = None
        self._listeners.clear()

    async def __aenter__(self) -> AssistantTransportRuntime:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def _on_queue(self) -> None:
        self._run_manager.schedule()

    def _resolve_context(self) -> ModelContext:
        if self._context is None:
            context = ModelContext()
        elif callable(self._context):
            context = self._context()
        else:
            context = self._context
        if self._tool_manager is not None:
            known = {t.name for t in context.tools}
            extra = [d for d in self._tool_manager.get_definitions() if d.name not in known]
            if extra:
                context = replace(context, tools=[*context.tools, *extra])
        return context

    async def _run(self, token: CancellationToken) -> None:
        commands = self._queue.flush()  # NothingToSend -> no-op run
        self._apply_outbound(commands)
        self._record("run-start", {"commands": len(commands)})

        accumulator = MessageAccumulator(self._state, on_state_change=self._queue.mark_delivered)
        self._accumulator = accumulator
        self._run_messages = accumulator.messages
        self._notify()

        body = build_request_body(commands, self._state, self._resolve_context(), self._config.body)
        async with self._transport.open(body, token) as chunks:
            async for snapshot in accumulator.accumulate(decode_stream(chunks)):
                token.raise_if_cancelled()
                self._state = snapshot.state
                self._run_messages = snapshot.messages
                self._invocations.observe(self.messages)
                if snapshot.state_changed:
                    self._record("state", snapshot.state)
                self._notify()

    def _apply_outbound(self, commands: list[Command]) -> None:
        """Show flushed user messages and attach flushed tool results."""
        self._sent_messages = [_user_message(c) for c in commands if isinstance(c, AddMessage)]
        for command in commands:
            if isinstance(command, AddToolResult):
                self._attach_tool_result(command)

    def _attach_tool_result(self, command: AddToolResult) -> None:
        for m_idx, message in enumerate(self._history):
            for p_idx, part in enumerate(message.content):
                if isinstance(part, ToolCallContent) and part.tool_call_id == command.tool_call_id:
                    content = list(message.content)
                    content[p_idx] = replace(
                        part,
                        result=command.result,
                        is_error=command.is_error,
                        artifact=command.artifact,
                        has_result=True,
                    )
                    self._history[m_idx] = replace(message, content=tuple(content))
                    return
        logger.debug("No tool call %s in history to attach a result to", command.tool_call_id)

    def _commit(self, *, interrupted: bool) -> None:
        """Move the finished run's messages into history."""
        run_messages = [m for m in self._run_messages if m.content]
        if run_messages:
            last = run_messages[-1]
            if interrupted and last.status != "complete":
                run_messages[-1] = replace(last, status="incomplete")
            elif not interrupted and last.status == "running":
                run_messages[-1] = replace(last, status="complete")
        self._history.extend(self._sent_messages)
        self._history.extend(run_messages)
        self._discard_run()

    def _discard_run(self) -> None:
        self._sent_messages = []
        self._run_messages = ()
        self._accumulator = None

    def _update_state(self, updater: StateUpdater) -> None:
        self._state = updater(self._state)
        self._notify()

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    async def _handle_finish(self) -> None:
        if self._queue.in_transit:
            # The endpoint answered without touching the state; the batch
            # still reached it.
            logger.debug("Run finished without a state change; acknowledging batch")
            self._queue.mark_delivered()
        self._commit(interrupted=False)
        self._record("run-finish")
        self._notify()
        await call_safely(self._on_finish)

    async def _handle_error(self, error: BaseException) -> None:
        if isinstance(error, QueueStateError):
            # flush() refused before this run owned a batch; the batch in
            # transit belongs to another run and is left alone.
            logger.error("Run could not start: %s", error)
            self._record("run-error", {"error": str(error), "commands": 0})
            await call_safely(self._on_error, error, RollbackContext([], self._update_state))
            return

        logger.warning("Run failed: %s: %s", type(error).__name__, error)
        ctx = RollbackContext(commands=list(self._queue.in_transit), update_state=self._update_state)
        self._commit(interrupted=True)
        # Fate of the batch is unknown; never resend it automatically.
        self._queue.mark_delivered()
        self._record("run-error", {"error": str(error), "commands": len(ctx.commands)})
        self._notify()
        await call_safely(self._on_error, error, ctx)

    async def _handle_cancel(self, _reason: BaseException) -> None:
        ctx = RollbackContext(commands=self._queue.pending_commands(), update_state=self._update_state)
        delivered = self._accumulator is not None and self._accumulator.state_changed
        if delivered:
            self._commit(interrupted=True)
        else:
            # Nothing reached the thread; the batch goes back to the queue.
            self._discard_run()
        # The queue is settled before user code runs, so commands enqueued
        # from on_cancel start a clean run.
        self._queue.reset()
        self._record("run-cancel", {"commands": len(ctx.commands)})
        self._notify()
        await call_safely(self._on_cancel, ctx)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.warning("Runtime listener raised", exc_info=True)

    def _record(self, event: str, data: Any = None) -> None:
        if self._registry is not None and self._registry_id is not None:
            self._registry.record(self._registry_id, event, data)

    def __repr__(self) -> str:
        return (
            f"AssistantTransportRuntime(api={self._config.api!r}, "
            f"messages={len(self.messages)}, running={self.is_running})"
        )
