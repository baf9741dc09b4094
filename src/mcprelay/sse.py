"""Server-Sent Events framing for downstream events.

Each event is written as a single ``data: <json>\\n\\n`` frame. The
:class:`SSEDecoder` reverses this on the consuming side and tolerates
frames split across arbitrary read boundaries.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from mcprelay.events import DownstreamEvent, event_from_payload

logger = logging.getLogger(__name__)

FRAME_PREFIX = "data: "


def encode_frame(event: DownstreamEvent) -> str:
    """Serialize one downstream event as an SSE frame."""
    return f"{FRAME_PREFIX}{json.dumps(event.to_payload())}\n\n"


async def sse_generator(
    event_stream: AsyncIterable[DownstreamEvent],
) -> AsyncIterator[str]:
    """Convert a DownstreamEvent async iterator into SSE-formatted strings."""
    async for event in event_stream:
        yield encode_frame(event)


class SSEDecoder:
    """Incremental decoder for ``data:`` frames.

    Bytes are decoded as UTF-8 incrementally so a multi-byte character
    split between reads is reassembled. Only complete lines are parsed;
    the trailing partial line waits for the next :meth:`feed`. Complete
    lines that still fail to parse are dropped.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes | str) -> list[DownstreamEvent]:
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse_lines(lines)

    def flush(self) -> list[DownstreamEvent]:
        """Parse whatever is left once the stream has ended."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return self._parse_lines([tail])

    def _parse_lines(self, lines: list[str]) -> list[DownstreamEvent]:
        events = []
        for line in lines:
            line = line.rstrip("\r")
            if not line.startswith(FRAME_PREFIX):
                continue
            try:
                events.append(event_from_payload(json.loads(line[len(FRAME_PREFIX):])))
            except ValueError as e:
                # json.JSONDecodeError is a ValueError subclass.
                logger.debug(f"Dropping undecodable frame {line[:80]!r}: {e}")
        return events


async def decode_stream(
    chunks: AsyncIterable[bytes | str],
) -> AsyncIterator[DownstreamEvent]:
    """Decode an async byte stream (e.g. ``httpx.Response.aiter_bytes()``)."""
    decoder = SSEDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
    for event in decoder.flush():
        yield event
