import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional


class WireFormat(str, Enum):
    JSON = "json"   # bare JSON objects back to back (generation stream)
    SSE = "sse"     # Server-Sent Events frames (optimization stream)


_SSE_SEPARATOR = re.compile(r"\r?\n\r?\n")
# A separator is at most 4 characters, so a partial one spans at most 3
_SSE_OVERLAP = 3


@dataclass
class JsonCursor:
    """
    Brace-matching state for one JSON object, resumable across chunks.

    Offsets are relative to the text passed to ``advance``; that text may only
    grow between calls (or be trimmed through ``shift``).
    """

    pos: int = 0            # next offset to examine
    begin: int = -1         # offset of the opening brace, -1 until found
    depth: int = 0
    in_string: bool = False
    escaping: bool = False

    def advance(self, text: str) -> Optional[int]:
        """Offset one past the closing brace, or None if the object is not complete yet."""
        if self.begin < 0:
            begin = text.find("{", self.pos)
            if begin == -1:
                self.pos = max(self.pos, len(text))
                return None
            self.begin = begin
            self.pos = begin + 1
            self.depth = 1

        depth = self.depth
        in_string = self.in_string
        escaping = self.escaping

        for i in range(self.pos, len(text)):
            char = text[i]

            if escaping:
                escaping = False
                continue

            if char == "\\" and in_string:
                escaping = True
                continue

            if char == '"':
                in_string = not in_string
                continue

            if in_string:
                continue

            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    self.pos = i + 1
                    self.depth = 0
                    self.in_string = self.escaping = False
                    return i + 1

        self.pos = max(self.pos, len(text))
        self.depth = depth
        self.in_string = in_string
        self.escaping = escaping
        return None

    def shift(self, offset: int) -> None:
        self.pos = max(0, self.pos - offset)
        if self.begin >= 0:
            self.begin -= offset


def find_json_object_end(text: str, start: int = 0) -> Optional[int]:
    """
    Offset one past the closing brace of the first complete JSON object
    at or after ``start``, or None if the object is not complete yet.

    Braces inside string literals and escaped characters do not count.
    """
    if start >= len(text):
        return None
    return JsonCursor(pos=start).advance(text)


def find_sse_event_end(text: str, start: int = 0) -> Optional[int]:
    """Offset one past the blank line that terminates the next SSE event."""
    match = _SSE_SEPARATOR.search(text, start)
    if not match:
        return None
    return match.end()


def has_data_line(block: str) -> bool:
    return any(line.startswith("data:") for line in block.splitlines())


@dataclass
class StreamState:
    """
    Accumulation buffer for one stream.

    Owned by exactly one consumer; every chunk is fed in arrival order and
    whatever ``drain`` cannot consume stays in ``buffer`` verbatim until the
    next chunk arrives. Scan progress into that tail is kept too, so each
    character is examined once however the message is chunked.
    """

    wire_format: WireFormat
    buffer: str = ""
    messages_seen: int = 0
    cursor: JsonCursor = field(default_factory=JsonCursor, repr=False)
    sse_search_from: int = field(default=0, repr=False)

    def feed(self, chunk: str) -> None:
        self.buffer += chunk

    def drain(self) -> Iterator[str]:
        """Yield every complete message currently in the buffer."""
        pos = 0
        try:
            while True:
                if self.wire_format is WireFormat.JSON:
                    end = self.cursor.advance(self.buffer)
                    if end is None:
                        break
                    span = self.buffer[self.cursor.begin:end]
                    self.cursor = JsonCursor(pos=end)
                else:
                    end = find_sse_event_end(self.buffer, max(pos, self.sse_search_from))
                    if end is None:
                        self.sse_search_from = max(pos, len(self.buffer) - _SSE_OVERLAP)
                        break
                    span = self.buffer[pos:end]
                    self.sse_search_from = end
                pos = end
                if self.wire_format is WireFormat.SSE and not has_data_line(span):
                    # comments / keep-alives carry no payload
                    continue
                self.messages_seen += 1
                yield span
        finally:
            self.buffer = self.buffer[pos:]
            self.cursor.shift(pos)
            self.sse_search_from = max(0, self.sse_search_from - pos)

    def flush(self) -> Optional[str]:
        """Return and clear the end-of-stream tail, if it holds anything."""
        tail, self.buffer = self.buffer, ""
        self.cursor = JsonCursor()
        self.sse_search_from = 0
        if not tail.strip():
            return None
        if self.wire_format is WireFormat.SSE and not has_data_line(tail):
            return None
        return tail
