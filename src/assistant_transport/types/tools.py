"""Client-side tool definition types and protocols."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from assistant_transport.core.cancellation import CancellationToken


@dataclass(frozen=True, slots=True)
class ToolParam:
    """A parameter for a tool."""

    name: str
    type: str  # "string", "integer", "number", "boolean", "array", "object"
    description: str
    required: bool = True
    enum: tuple[str, ...] | None = None
    default: Any = None
    items: dict[str, Any] | None = None  # For array types: JSON Schema for items


@dataclass(frozen=True, slots=True)
class ToolDef:
    """Definition of a tool exposed to the remote agent."""

    name: str
    description: str
    parameters: tuple[ToolParam, ...] = ()
    enabled: bool = True


@dataclass(slots=True)
class ToolResultData:
    """Data returned from tool execution."""

    result: Any = None
    is_error: bool = False
    artifact: Any = None


@dataclass(slots=True)
class ToolContext:
    """Context passed to tool execute methods."""

    tool_call_id: str
    tool_name: str
    cancel_token: CancellationToken


@runtime_checkable
class Tool(Protocol):
    """Protocol that all client-side tools must implement."""

    @property
    def definition(self) -> ToolDef:
        """Return the tool definition sent to the endpoint."""
        ...

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        """Execute the tool with the parsed arguments."""
        ...
