"""Inbound stream decoding and message accumulation."""

from assistant_transport.stream.accumulator import (
    AccumulatorSnapshot,
    MessageAccumulator,
    create_initial_message,
)
from assistant_transport.stream.decoder import (
    DataStreamDecoder,
    decode_line,
    decode_stream,
    encode_frame,
)
from assistant_transport.stream.state import apply_state_operations

__all__ = [
    "AccumulatorSnapshot",
    "DataStreamDecoder",
    "MessageAccumulator",
    "apply_state_operations",
    "create_initial_message",
    "decode_line",
    "decode_stream",
    "encode_frame",
]
