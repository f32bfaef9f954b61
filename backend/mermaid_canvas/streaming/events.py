import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from mermaid_canvas.errors import ParseError
from mermaid_canvas.streaming.scanner import WireFormat


class EventKind(str, Enum):
    DELTA = "delta"
    FINAL = "final"
    ERROR = "error"
    IGNORED = "ignored"


@dataclass(frozen=True)
class StreamEvent:
    kind: EventKind
    text: str = ""

    @classmethod
    def delta(cls, text: str) -> "StreamEvent":
        return cls(EventKind.DELTA, text)

    @classmethod
    def final(cls, content: str) -> "StreamEvent":
        return cls(EventKind.FINAL, content)

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(EventKind.ERROR, message)

    @classmethod
    def ignored(cls) -> "StreamEvent":
        return cls(EventKind.IGNORED)

    @property
    def is_terminal(self) -> bool:
        return self.kind in (EventKind.FINAL, EventKind.ERROR)


DEFAULT_ERROR_MESSAGE = "The AI service reported an error"


def _load_object(text: str) -> Dict[str, Any]:
    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise ParseError(f"invalid JSON in stream message: {exc}", span=text) from exc

    if not isinstance(payload, dict):
        return {}
    return payload


# ============================================================
# PROTOCOL A: bare JSON objects
# ============================================================

def decode_json_message(span: str) -> StreamEvent:
    """
    {"error": str}                        -> error
    {"chunk": str, "done": false}         -> delta
    {"mermaidCode": str, "done": true}    -> final
    anything else                         -> ignored
    """
    payload = _load_object(span)

    error = payload.get("error")
    if error:
        return StreamEvent.error(str(error))

    done = payload.get("done") is True
    chunk = payload.get("chunk")
    if not done and isinstance(chunk, str) and chunk:
        return StreamEvent.delta(chunk)

    code = payload.get("mermaidCode")
    if done and isinstance(code, str):
        return StreamEvent.final(code)

    return StreamEvent.ignored()


# ============================================================
# PROTOCOL B: SSE frames carrying {"type": ...}
# ============================================================

def sse_data(block: str) -> str:
    """Join the ``data:`` lines of one SSE event, prefixes stripped."""
    lines = [
        line[len("data:"):].strip()
        for line in block.splitlines()
        if line.startswith("data:")
    ]
    return "\n".join(lines).strip()


def decode_sse_message(block: str) -> StreamEvent:
    data = sse_data(block)
    if not data or data == "[DONE]":
        return StreamEvent.ignored()

    payload = _load_object(data)
    kind = payload.get("type")

    if kind == "chunk":
        chunk = payload.get("data")
        if isinstance(chunk, str) and chunk:
            return StreamEvent.delta(chunk)
        return StreamEvent.ignored()

    if kind == "final" and payload.get("ok"):
        final = payload.get("data")
        return StreamEvent.final(final if isinstance(final, str) else "")

    if kind == "error":
        return StreamEvent.error(str(payload.get("message") or DEFAULT_ERROR_MESSAGE))

    return StreamEvent.ignored()


_DECODERS = {
    WireFormat.JSON: decode_json_message,
    WireFormat.SSE: decode_sse_message,
}


def decode_message(wire_format: WireFormat, span: str) -> StreamEvent:
    return _DECODERS[wire_format](span)
