"""ToolManager: registry and dispatcher for client-side tools."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from assistant_transport.tools.base import FunctionTool
from assistant_transport.types.tools import Tool, ToolContext, ToolDef, ToolResultData

logger = logging.getLogger(__name__)


class ToolManager:
    """Registers tools and dispatches execution requests.

    Usage::

        manager = ToolManager()
        manager.register(WeatherTool())
        result = await manager.execute("weather", {"city": "Oslo"}, ctx)
    """

    def __init__(self, tools: list[Tool] | None = None) -> None:
        self._registry: dict[str, Tool] = {}
        for tool in tools or ():
            self.register(tool)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, tool: Tool) -> None:
        """Add a tool to the registry under its definition name.

        Any object satisfying the :class:`Tool` protocol is accepted; it
        does not have to subclass :class:`BaseTool`.
        """
        if not isinstance(tool, Tool):
            raise TypeError(f"{tool!r} does not implement the Tool protocol")
        self._registry[tool.definition.name] = tool

    def register_function(self, definition: ToolDef, fn: Callable[..., Any]) -> FunctionTool:
        """Wrap *fn* in a :class:`FunctionTool` and register it."""
        tool = FunctionTool(definition, fn)
        self.register(tool)
        return tool

    def unregister(self, name: str) -> None:
        self._registry.pop(name, None)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> Tool | None:
        """Return the tool with the given name, or None."""
        return self._registry.get(name)

    def get_definitions(self) -> list[ToolDef]:
        """Return all registered tool definitions (for the request schema)."""
        return [tool.definition for tool in self._registry.values()]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute(
        self,
        name: str,
        args: dict[str, Any],
        ctx: ToolContext,
    ) -> ToolResultData:
        """Dispatch a tool call by name.

        Returns a ToolResultData with is_error=True if the tool is not found
        or raises an unexpected exception.
        """
        tool = self._registry.get(name)
        if tool is None:
            return ToolResultData(
                result=f"Unknown tool: '{name}'. Available tools: {sorted(self._registry)}",
                is_error=True,
            )

        try:
            return await tool.execute(args, ctx)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Tool %s raised", name, exc_info=True)
            return ToolResultData(
                result=f"Tool '{name}' raised an unexpected error: {exc}",
                is_error=True,
            )

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._registry)

    def __contains__(self, name: object) -> bool:
        return name in self._registry

    def __repr__(self) -> str:
        return f"ToolManager(tools={sorted(self._registry)})"
