"""DataStreamDecoder: incremental decoder for the line-framed data stream.

Each frame is one line ``<code>:<json>\\n``.  Chunks may split a line (or a
multi-byte UTF-8 sequence) anywhere; the decoder keeps only the unconsumed
tail and never re-scans lines it has already emitted.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable
from typing import Any

from assistant_transport.observability.metrics import record_frame
from assistant_transport.types.errors import DecodeError
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

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Payload validation helpers
# ---------------------------------------------------------------------------


def _require_obj(code: str, payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise DecodeError(f"Frame '{code}' expects an object, got {type(payload).__name__}")
    return payload


def _require_str(code: str, obj: dict[str, Any], key: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise DecodeError(f"Frame '{code}' is missing string field '{key}'")
    return value


def _parse_text(payload: Any) -> Frame:
    if not isinstance(payload, str):
        raise DecodeError("Frame '0' expects a string")
    return TextDelta(text=payload)


def _parse_image(payload: Any) -> Frame:
    obj = _require_obj("i", payload)
    return ImageFrame(image=_require_str("i", obj, "image"))


def _parse_tool_begin(payload: Any) -> Frame:
    obj = _require_obj("b", payload)
    return ToolCallBegin(
        tool_call_id=_require_str("b", obj, "toolCallId"),
        tool_name=_require_str("b", obj, "toolName"),
    )


def _parse_tool_delta(payload: Any) -> Frame:
    obj = _require_obj("c", payload)
    return ToolCallDelta(
        tool_call_id=_require_str("c", obj, "toolCallId"),
        args_text_delta=_require_str("c", obj, "argsTextDelta"),
    )


def _parse_tool_call(payload: Any) -> Frame:
    obj = _require_obj("9", payload)
    return ToolCallFrame(
        tool_call_id=_require_str("9", obj, "toolCallId"),
        tool_name=_require_str("9", obj, "toolName"),
        args_text=_require_str("9", obj, "argsText"),
    )


def _parse_tool_result(payload: Any) -> Frame:
    obj = _require_obj("a", payload)
    is_error = obj.get("isError", False)
    if not isinstance(is_error, bool):
        raise DecodeError("Frame 'a' field 'isError' must be a boolean")
    return ToolResultFrame(
        tool_call_id=_require_str("a", obj, "toolCallId"),
        result=obj.get("result"),
        is_error=is_error,
        artifact=obj.get("artifact"),
    )


def _parse_state_ops(payload: Any) -> Frame:
    if not isinstance(payload, list):
        raise DecodeError("Frame 'u' expects a list of operations")
    ops: list[StateOp] = []
    for raw in payload:
        op = _require_obj("u", raw)
        op_type = _require_str("u", op, "type")
        if op_type not in ("set", "append-text"):
            raise DecodeError(f"Unknown state operation: {op_type!r}")
        path = op.get("path")
        if not isinstance(path, list) or not all(
            isinstance(p, (str, int)) and not isinstance(p, bool) for p in path
        ):
            raise DecodeError("State operation 'path' must be a list of keys")
        if "value" not in op:
            raise DecodeError("State operation is missing 'value'")
        if op_type == "append-text" and not isinstance(op["value"], str):
            raise DecodeError("'append-text' operation requires a string value")
        ops.append(StateOp(type=op_type, path=tuple(path), value=op["value"]))
    return StateUpdate(operations=tuple(ops))


def _parse_start(payload: Any) -> Frame:
    obj = _require_obj("f", payload)
    message_id = obj.get("messageId")
    if message_id is not None and not isinstance(message_id, str):
        raise DecodeError("Frame 'f' field 'messageId' must be a string")
    return StartMessage(message_id=message_id)


def _parse_finish(payload: Any) -> Frame:
    obj = _require_obj("d", payload)
    reason = obj.get("finishReason", "stop")
    usage = obj.get("usage") or {}
    if not isinstance(reason, str) or not isinstance(usage, dict):
        raise DecodeError("Frame 'd' has malformed 'finishReason' or 'usage'")
    return FinishMessage(finish_reason=reason, usage=usage)


def _parse_error(payload: Any) -> Frame:
    if not isinstance(payload, str):
        raise DecodeError("Frame '3' expects a string")
    return ErrorFrame(error=payload)


_PARSERS: dict[str, Callable[[Any], Frame]] = {
    "0": _parse_text,
    "i": _parse_image,
    "b": _parse_tool_begin,
    "c": _parse_tool_delta,
    "9": _parse_tool_call,
    "a": _parse_tool_result,
    "s": lambda payload: StateSnapshot(state=payload),
    "u": _parse_state_ops,
    "f": _parse_start,
    "d": _parse_finish,
    "3": _parse_error,
}


def decode_line(line: str) -> Frame:
    """Decode a single complete frame line (without the trailing newline)."""
    code, sep, body = line.partition(":")
    if not sep:
        raise DecodeError(f"Malformed frame (no ':' separator): {line[:80]!r}")
    parser = _PARSERS.get(code)
    if parser is None:
        raise DecodeError(f"Unknown frame code: {code!r}")
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Invalid JSON in frame '{code}': {exc}") from exc
    return parser(payload)


# ---------------------------------------------------------------------------
# Encoding (servers and tests)
# ---------------------------------------------------------------------------


def _frame_to_wire(frame: Frame) -> tuple[str, Any]:
    match frame:
        case TextDelta(text=text):
            return "0", text
        case ImageFrame(image=image):
            return "i", {"image": image}
        case ToolCallBegin(tool_call_id=tid, tool_name=name):
            return "b", {"toolCallId": tid, "toolName": name}
        case ToolCallDelta(tool_call_id=tid, args_text_delta=delta):
            return "c", {"toolCallId": tid, "argsTextDelta": delta}
        case ToolCallFrame(tool_call_id=tid, tool_name=name, args_text=args):
            return "9", {"toolCallId": tid, "toolName": name, "argsText": args}
        case ToolResultFrame():
            data: dict[str, Any] = {
                "toolCallId": frame.tool_call_id,
                "result": frame.result,
                "isError": frame.is_error,
            }
            if frame.artifact is not None:
                data["artifact"] = frame.artifact
            return "a", data
        case StateSnapshot(state=state):
            return "s", state
        case StateUpdate(operations=ops):
            return "u", [{"type": op.type, "path": list(op.path), "value": op.value} for op in ops]
        case StartMessage(message_id=mid):
            return "f", {"messageId": mid} if mid is not None else {}
        case FinishMessage(finish_reason=reason, usage=usage):
            return "d", {"finishReason": reason, "usage": usage}
        case ErrorFrame(error=error):
            return "3", error
    raise TypeError(f"Not a frame: {frame!r}")


def encode_frame(frame: Frame) -> bytes:
    """Encode *frame* as one newline-terminated wire line."""
    code, payload = _frame_to_wire(frame)
    return f"{code}:{json.dumps(payload, separators=(',', ':'))}\n".encode()


# ---------------------------------------------------------------------------
# Incremental decoder
# ---------------------------------------------------------------------------


class DataStreamDecoder:
    """Push-style incremental decoder.

    Usage::

        decoder = DataStreamDecoder()
        for chunk in chunks:
            for frame in decoder.feed(chunk):
                ...
        decoder.close()   # raises DecodeError on a dangling partial frame
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="strict")
        self._tail = ""
        self._frames = 0
        self._closed = False

    @property
    def frames_decoded(self) -> int:
        return self._frames

    def feed(self, chunk: bytes | str) -> list[Frame]:
        """Consume *chunk* and return every frame it completes, in order."""
        if self._closed:
            raise DecodeError("Decoder is closed")
        if isinstance(chunk, bytes):
            try:
                text = self._utf8.decode(chunk)
            except UnicodeDecodeError as exc:
                raise DecodeError(f"Invalid UTF-8 in stream: {exc}") from exc
        else:
            text = chunk
        if not text:
            return []

        # The tail never contains a newline, so emitted lines are never rescanned.
        lines = (self._tail + text).split("\n")
        self._tail = lines.pop()

        frames: list[Frame] = []
        for line in lines:
            line = line.rstrip("\r")
            if not line:
                continue
            frame = decode_line(line)
            frames.append(frame)
            self._frames += 1
            record_frame(type(frame).__name__)
        return frames

    def close(self) -> None:
        """Mark end of stream; a partial trailing frame is a decode error."""
        if self._closed:
            return
        self._closed = True
        try:
            rest = self._utf8.decode(b"", final=True)
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Truncated UTF-8 sequence at end of stream: {exc}") from exc
        tail = (self._tail + rest).strip()
        self._tail = ""
        if tail:
            raise DecodeError(f"Stream ended mid-frame: {tail[:80]!r}")
        logger.debug("Decoder closed after %d frame(s)", self._frames)


async def decode_stream(chunks: AsyncIterable[bytes | str]) -> AsyncIterator[Frame]:
    """Lazily decode an async chunk stream into frames.

    Single-pass and finite: ends when *chunks* is exhausted.
    """
    decoder = DataStreamDecoder()
    async for chunk in chunks:
        for frame in decoder.feed(chunk):
            yield frame
    decoder.close()
