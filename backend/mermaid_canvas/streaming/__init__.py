# Incremental decoding of the generation (JSON) and optimization (SSE) streams

from mermaid_canvas.streaming.scanner import (
    WireFormat,
    StreamState,
    find_json_object_end,
    find_sse_event_end,
)
from mermaid_canvas.streaming.events import (
    EventKind,
    StreamEvent,
    decode_json_message,
    decode_sse_message,
    decode_message,
)
from mermaid_canvas.streaming.consumer import StreamConsumer, StreamResult, consume_stream

__all__ = [
    "WireFormat",
    "StreamState",
    "find_json_object_end",
    "find_sse_event_end",
    "EventKind",
    "StreamEvent",
    "decode_json_message",
    "decode_sse_message",
    "decode_message",
    "StreamConsumer",
    "StreamResult",
    "consume_stream",
]
