"""
Incremental parsing of a server-sent event stream into discrete events.

Chunks may split frames (and line terminators) anywhere; the parser keeps
the unconsumed tail between calls and only ever emits whole frames.
"""
import re
from typing import AsyncIterable, AsyncIterator

from fiddlekit.internal.logging import get_logger

logger = get_logger(__name__)

Event = dict[str, str]

FRAME_DELIMITER = b"\n\n"
_FIELD_LINE = re.compile(r"^([^:]+):\s*(\S.*?)\s*$")
_LINE_BREAKS = re.compile(r"\n+")


def parse_frame(frame: str) -> Event:
    """
    Turn one frame into a field map. Lines that are not 'key: value' are
    skipped; a repeated key keeps its last value.
    """
    event: Event = {}
    for line in _LINE_BREAKS.split(frame):
        m = _FIELD_LINE.match(line)
        if m:
            event[m.group(1)] = m.group(2)
    return event


class EventStreamParser:
    """
    Buffers raw bytes and yields every complete frame as an event.
    """

    def __init__(self):
        self._buffer = b""
        # A trailing CR may be the first half of a CRLF split across chunks
        self._carry = b""

    @property
    def pending(self) -> bytes:
        """Bytes of a frame that has not been terminated yet."""
        return self._buffer + self._carry

    def feed(self, chunk: bytes) -> list[Event]:
        data = self._carry + chunk
        self._carry = b""
        if data.endswith(b"\r"):
            data, self._carry = data[:-1], b"\r"
        self._buffer += data.replace(b"\r\n", b"\n")

        events = []
        while True:
            pos = self._buffer.find(FRAME_DELIMITER)
            if pos == -1:
                break
            frame = self._buffer[:pos].decode("utf-8", errors="replace")
            self._buffer = self._buffer[pos + len(FRAME_DELIMITER):]
            events.append(parse_frame(frame))
        return events


async def iter_events(stream: AsyncIterable[bytes]) -> AsyncIterator[Event]:
    """
    Lazily parse an async byte stream. A partial frame left when the stream
    ends is dropped.
    """
    parser = EventStreamParser()
    async for chunk in stream:
        if not chunk:
            continue
        for event in parser.feed(chunk):
            yield event

    if parser.pending.strip():
        logger.debug("Discarding unterminated frame at end of stream", size=len(parser.pending))
