"""Tool schema conversion for the outbound request payload."""

from __future__ import annotations

from typing import Any

from assistant_transport.types.tools import ToolDef, ToolParam


def param_to_schema(param: ToolParam) -> dict[str, Any]:
    """Render a single :class:`ToolParam` as a JSON Schema property dict."""
    prop: dict[str, Any] = {
        "type": param.type,
        "description": param.description,
    }
    if param.enum is not None:
        prop["enum"] = list(param.enum)
    if param.default is not None:
        prop["default"] = param.default
    # Array types require an items schema.
    if param.type == "array":
        prop["items"] = param.items if param.items is not None else {"type": "string"}
    return prop


def tool_to_schema(tool: ToolDef) -> dict[str, Any]:
    """Build the JSON Schema ``object`` describing a tool's parameters."""
    properties: dict[str, Any] = {}
    required: list[str] = []
    for param in tool.parameters:
        properties[param.name] = param_to_schema(param)
        if param.required:
            required.append(param.name)

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def get_enabled_tools(tools: list[ToolDef]) -> list[ToolDef]:
    """Drop tools that are switched off for this session."""
    return [t for t in tools if t.enabled]


def to_request_tools(tools: list[ToolDef]) -> dict[str, dict[str, Any]]:
    """Convert tool definitions into the ``tools`` field of a request.

    >>> to_request_tools([ToolDef(name="ping", description="Ping")])
    {'ping': {'description': 'Ping', 'parameters': {'type': 'object', 'properties': {}}}}
    """
    return {
        t.name: {"description": t.description, "parameters": tool_to_schema(t)}
        for t in get_enabled_tools(tools)
    }
