"""Assistant Transport: client runtime for streaming agent endpoints.

Usage:
    import assistant_transport as at

    async with at.AssistantTransportRuntime(
        at.TransportConfig(api="http://localhost:8000/assistant"),
    ) as runtime:
        runtime.append_message("Hello")
        await runtime.wait_idle()
        print(runtime.messages[-1].text)
"""

from assistant_transport.core.cancellation import CancellationToken
from assistant_transport.core.queue import CommandQueue
from assistant_transport.core.run_manager import RunManager, RunOutcome
from assistant_transport.core.runtime import AssistantTransportRuntime, RollbackContext
from assistant_transport.devtools.registry import EventLog, InspectionRegistry
from assistant_transport.stream.accumulator import MessageAccumulator
from assistant_transport.stream.decoder import DataStreamDecoder, decode_stream, encode_frame
from assistant_transport.tools.base import BaseTool, FunctionTool
from assistant_transport.tools.invocations import ToolInvocationController
from assistant_transport.tools.manager import ToolManager
from assistant_transport.types.commands import AddMessage, AddToolResult, Command, ImagePart, TextPart
from assistant_transport.types.config import ModelContext, TransportConfig
from assistant_transport.types.errors import (
    DecodeError,
    ProtocolViolation,
    RemoteError,
    TransportError,
    TransportRuntimeError,
)
from assistant_transport.types.messages import Message, TextContent, ToolCallContent
from assistant_transport.types.tools import ToolContext, ToolDef, ToolParam, ToolResultData

__version__ = "0.1.0"

__all__ = [
    # Runtime
    "AssistantTransportRuntime",
    "CancellationToken",
    "CommandQueue",
    "RollbackContext",
    "RunManager",
    "RunOutcome",
    # Stream
    "DataStreamDecoder",
    "MessageAccumulator",
    "decode_stream",
    "encode_frame",
    # Commands and messages
    "AddMessage",
    "AddToolResult",
    "Command",
    "ImagePart",
    "Message",
    "TextContent",
    "TextPart",
    "ToolCallContent",
    # Configuration
    "ModelContext",
    "TransportConfig",
    # Tools
    "BaseTool",
    "FunctionTool",
    "ToolContext",
    "ToolDef",
    "ToolInvocationController",
    "ToolManager",
    "ToolParam",
    "ToolResultData",
    # Inspection
    "EventLog",
    "InspectionRegistry",
    # Errors
    "DecodeError",
    "ProtocolViolation",
    "RemoteError",
    "TransportError",
    "TransportRuntimeError",
]
