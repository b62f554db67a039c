"""Type definitions for the transport runtime."""

from assistant_transport.types.commands import (
    AddMessage,
    AddToolResult,
    Command,
    ImagePart,
    QueueState,
    TextPart,
    UserMessagePart,
    command_to_dict,
)
from assistant_transport.types.config import ModelContext, TransportConfig
from assistant_transport.types.errors import (
    DecodeError,
    NothingToSend,
    ProtocolViolation,
    QueueStateError,
    RemoteError,
    RunAborted,
    TransportError,
    TransportRuntimeError,
)
from assistant_transport.types.frames import (
    ErrorFrame,
    FinishMessage,
    Frame,
    ImageFrame,
    StartMessage,
    StateOp,
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
from assistant_transport.types.tools import Tool, ToolContext, ToolDef, ToolParam, ToolResultData

__all__ = [
    "AddMessage",
    "AddToolResult",
    "Command",
    "Content",
    "DecodeError",
    "ErrorFrame",
    "FinishMessage",
    "Frame",
    "ImageContent",
    "ImageFrame",
    "ImagePart",
    "Message",
    "ModelContext",
    "NothingToSend",
    "ProtocolViolation",
    "QueueState",
    "QueueStateError",
    "RemoteError",
    "RunAborted",
    "StartMessage",
    "StateOp",
    "StateSnapshot",
    "StateUpdate",
    "TextContent",
    "TextDelta",
    "TextPart",
    "Tool",
    "ToolCallBegin",
    "ToolCallContent",
    "ToolCallDelta",
    "ToolCallFrame",
    "ToolContext",
    "ToolDef",
    "ToolParam",
    "ToolResultData",
    "ToolResultFrame",
    "TransportConfig",
    "TransportError",
    "TransportRuntimeError",
    "UserMessagePart",
    "command_to_dict",
]
