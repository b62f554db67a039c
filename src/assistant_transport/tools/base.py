"""Base tool classes with shared logic."""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from assistant_transport.types.tools import ToolContext, ToolDef, ToolResultData


class BaseTool(ABC):
    """Base class for client-side tools."""

    @property
    @abstractmethod
    def definition(self) -> ToolDef:
        ...

    @abstractmethod
    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        ...

    def _error(self, msg: str) -> ToolResultData:
        return ToolResultData(result=msg, is_error=True)

    def _ok(self, result: Any, artifact: Any = None) -> ToolResultData:
        return ToolResultData(result=result, artifact=artifact)


class FunctionTool(BaseTool):
    """Adapts a plain (sync or async) function into a tool.

    The function is called with the parsed arguments as keyword arguments.
    If it declares a ``ctx`` parameter the :class:`ToolContext` is passed
    too, which is how long-running tools observe ``ctx.cancel_token``.
    Returning a :class:`ToolResultData` passes it through untouched; any
    other return value becomes the result.
    """

    def __init__(self, definition: ToolDef, fn: Callable[..., Any]) -> None:
        self._definition = definition
        self._fn = fn
        self._wants_ctx = "ctx" in inspect.signature(fn).parameters

    @property
    def definition(self) -> ToolDef:
        return self._definition

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        kwargs = dict(args)
        if self._wants_ctx:
            kwargs["ctx"] = ctx
        value = self._fn(**kwargs)
        if inspect.isawaitable(value):
            value = await value
        if isinstance(value, ToolResultData):
            return value
        return self._ok(value)

    def __repr__(self) -> str:
        return f"FunctionTool({self._definition.name!r})"
