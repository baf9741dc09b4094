"""Unit tests for SSE framing and the incremental decoder."""

import json

import pytest

from mcprelay.events import (
    DoneEvent,
    ErrorEvent,
    TextEvent,
    ToolCompleteEvent,
    ToolStartEvent,
    event_from_payload,
)
from mcprelay.sse import SSEDecoder, decode_stream, encode_frame, sse_generator

EVENTS = [
    ToolStartEvent(name="search", id="t1"),
    ToolCompleteEvent(name="search", id="t1", input={"q": "x"}),
    TextEvent(content="Found it — naïve café ☕"),
    DoneEvent(),
]


def wire() -> bytes:
    return "".join(encode_frame(e) for e in EVENTS).encode("utf-8")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

class TestEncodeFrame:
    def test_frame_format(self):
        frame = encode_frame(TextEvent(content="hi"))
        assert frame == 'data: {"type": "text", "content": "hi"}\n\n'

    @pytest.mark.parametrize("event, payload", [
        (TextEvent(content="a"), {"type": "text", "content": "a"}),
        (ToolStartEvent(name="s", id="1"), {"type": "tool_start", "name": "s", "id": "1"}),
        (ToolCompleteEvent(name="s", id="1", input={"q": 1}),
         {"type": "tool_complete", "name": "s", "id": "1", "input": {"q": 1}}),
        (DoneEvent(), {"type": "done"}),
        (ErrorEvent(message="boom"), {"type": "error", "error": "boom"}),
    ])
    def test_payload_schemas(self, event, payload):
        frame = encode_frame(event)
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame.removeprefix("data: ")) == payload

    @pytest.mark.asyncio
    async def test_sse_generator_yields_one_frame_per_event(self):
        async def events():
            for e in EVENTS:
                yield e

        frames = [f async for f in sse_generator(events())]
        assert frames == [encode_frame(e) for e in EVENTS]


class TestEventFromPayload:
    def test_error_payload_uses_error_field(self):
        assert event_from_payload({"type": "error", "error": "boom"}) == ErrorEvent(message="boom")

    def test_missing_id_becomes_empty(self):
        assert event_from_payload({"type": "tool_start", "name": "s"}) == ToolStartEvent(name="s", id="")

    @pytest.mark.parametrize("payload", [
        [],
        {"type": "mystery"},
        {"type": "text"},
        {"type": "tool_complete", "name": "s", "id": "1", "input": [1]},
    ])
    def test_invalid_payloads_raise_value_error(self, payload):
        with pytest.raises(ValueError):
            event_from_payload(payload)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

class TestSSEDecoder:
    def test_single_read(self):
        decoder = SSEDecoder()
        assert decoder.feed(wire()) == EVENTS
        assert decoder.flush() == []

    def test_every_split_offset_matches_single_read(self):
        data = wire()
        for offset in range(1, len(data)):
            decoder = SSEDecoder()
            events = decoder.feed(data[:offset]) + decoder.feed(data[offset:])
            events += decoder.flush()
            assert events == EVENTS, f"split at byte {offset}"

    def test_byte_at_a_time(self):
        decoder = SSEDecoder()
        events = []
        for i in range(len(wire())):
            events.extend(decoder.feed(wire()[i:i + 1]))
        assert events == EVENTS

    def test_multibyte_character_split_across_reads(self):
        data = 'data: {"type": "text", "content": "café"}\n\n'.encode("utf-8")
        split = data.index("é".encode("utf-8")) + 1
        decoder = SSEDecoder()
        events = decoder.feed(data[:split]) + decoder.feed(data[split:])
        assert events == [TextEvent(content="café")]

    def test_accepts_str_chunks(self):
        text = wire().decode("utf-8")
        decoder = SSEDecoder()
        assert decoder.feed(text[:10]) + decoder.feed(text[10:]) == EVENTS

    def test_partial_frame_is_not_surfaced(self):
        decoder = SSEDecoder()
        assert decoder.feed(b'data: {"type": "te') == []

    def test_garbage_lines_are_dropped(self):
        decoder = SSEDecoder()
        data = (
            b"data: {not json}\n\n"
            b": keep-alive comment\n\n"
            b"event: ping\n"
            b'data: {"type": "nope"}\n\n'
            b'data: {"type": "done"}\n\n'
        )
        assert decoder.feed(data) == [DoneEvent()]

    def test_crlf_line_endings(self):
        decoder = SSEDecoder()
        assert decoder.feed(b'data: {"type": "done"}\r\n\r\n') == [DoneEvent()]

    def test_flush_parses_unterminated_last_line(self):
        decoder = SSEDecoder()
        assert decoder.feed(b'data: {"type": "done"}') == []
        assert decoder.flush() == [DoneEvent()]

    @pytest.mark.asyncio
    async def test_decode_stream(self):
        data = wire()

        async def chunks():
            for i in range(0, len(data), 7):
                yield data[i:i + 7]

        events = [e async for e in decode_stream(chunks())]
        assert events == EVENTS
