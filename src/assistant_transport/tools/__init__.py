"""Client-side tools and their invocation controller."""

from assistant_transport.tools.base import BaseTool, FunctionTool
from assistant_transport.tools.invocations import (
    ToolCallStream,
    ToolInvocationController,
    is_args_text_complete,
)
from assistant_transport.tools.manager import ToolManager
from assistant_transport.tools.schema import to_request_tools

__all__ = [
    "BaseTool",
    "FunctionTool",
    "ToolCallStream",
    "ToolInvocationController",
    "ToolManager",
    "is_args_text_complete",
    "to_request_tools",
]
