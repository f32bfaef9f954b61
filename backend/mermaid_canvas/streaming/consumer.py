import codecs
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union

from mermaid_canvas.dsl.mermaid import extract_code_block
from mermaid_canvas.errors import ParseError, ProtocolError
from mermaid_canvas.streaming.events import EventKind, decode_message
from mermaid_canvas.streaming.scanner import StreamState, WireFormat

logger = logging.getLogger(__name__)

DeltaSink = Callable[[str], None]
Chunk = Union[str, bytes]


@dataclass
class StreamResult:
    content: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


class StreamConsumer:
    """
    Drives one live response through the scanner and decoder.

    - deltas go to ``on_delta`` synchronously, in arrival order
    - the first final or error event ends the stream
    - undecodable messages are logged and skipped
    - a stream without a final event resolves to empty content
    """

    def __init__(self, wire_format: WireFormat, on_delta: Optional[DeltaSink] = None):
        self.wire_format = wire_format
        self.on_delta = on_delta

    def consume(self, chunks: Iterable[Chunk]) -> StreamResult:
        state = StreamState(self.wire_format)
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

        try:
            for chunk in chunks:
                text = decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
                if not text:
                    continue
                state.feed(text)

                for span in state.drain():
                    result = self._handle(span)
                    if result is not None:
                        logger.debug("Stream finished after %d messages", state.messages_seen)
                        return result

            state.feed(decoder.decode(b"", final=True))
            tail = state.flush()
            if tail is not None:
                if self.wire_format is WireFormat.JSON:
                    logger.warning("Discarding unterminated stream message: %r", tail[:200])
                else:
                    result = self._handle(tail)
                    if result is not None:
                        return result
        except ProtocolError as exc:
            logger.info("Stream aborted by error event: %s", exc.message)
            return StreamResult(error=exc.message)

        logger.debug("Stream ended without a final message (%d messages)", state.messages_seen)
        return StreamResult()

    def _handle(self, span: str) -> Optional[StreamResult]:
        """Dispatch one message. Returns a result only when the stream is finished."""
        try:
            event = decode_message(self.wire_format, span)
        except ParseError as exc:
            logger.warning("Skipping malformed stream message: %s | %r", exc, exc.span[:200])
            return None

        if event.kind is EventKind.DELTA:
            if self.on_delta is not None:
                self.on_delta(event.text)
        elif event.kind is EventKind.ERROR:
            raise ProtocolError(event.text)
        elif event.kind is EventKind.FINAL:
            return StreamResult(content=extract_code_block(event.text))
        return None


def consume_stream(
    chunks: Iterable[Chunk],
    wire_format: WireFormat = WireFormat.JSON,
    on_delta: Optional[DeltaSink] = None,
) -> StreamResult:
    return StreamConsumer(wire_format, on_delta).consume(chunks)
