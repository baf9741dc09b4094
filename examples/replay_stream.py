"""Offline example: replay a recorded provider stream through the relay.

Demonstrates:
- Translating raw provider events into downstream events
- Framing them as SSE and decoding them again in uneven reads
- Projecting the decoded events into a chat turn with tool pills

Usage:
    uv run examples/replay_stream.py
"""

import asyncio

from mcprelay.projection import AssistantTurn
from mcprelay.sse import SSEDecoder, sse_generator
from mcprelay.translator import StreamTranslator

RECORDED = [
    {"type": "message_start", "message": {"id": "msg_1"}},
    {"type": "content_block_start", "index": 0,
     "content_block": {"type": "text", "text": ""}},
    {"type": "content_block_delta", "index": 0,
     "delta": {"type": "text_delta", "text": "Let me look that up. "}},
    {"type": "content_block_stop", "index": 0},
    {"type": "content_block_start", "index": 1,
     "content_block": {"type": "mcp_tool_use", "id": "mcptoolu_1",
                       "name": "list_products", "server_name": "mcp-tools"}},
    {"type": "content_block_delta", "index": 1,
     "delta": {"type": "input_json_delta", "partial_json": '{"categ'}},
    {"type": "content_block_delta", "index": 1,
     "delta": {"type": "input_json_delta", "partial_json": 'ory": "shoes"}'}},
    {"type": "content_block_stop", "index": 1},
    {"type": "content_block_start", "index": 2,
     "content_block": {"type": "mcp_tool_result", "tool_use_id": "mcptoolu_1"}},
    {"type": "content_block_stop", "index": 2},
    {"type": "content_block_delta", "index": 3,
     "delta": {"type": "text_delta", "text": "I found **3 pairs** of shoes."}},
    {"type": "message_delta", "delta": {"stop_reason": "end_turn"}},
    {"type": "message_stop"},
]


async def recorded_stream():
    for event in RECORDED:
        yield event


async def main():
    translator = StreamTranslator()
    wire = "".join([
        frame async for frame in sse_generator(translator.translate(recorded_stream()))
    ]).encode("utf-8")
    print(wire.decode("utf-8"))

    decoder = SSEDecoder()
    turn = AssistantTurn()
    # Deliberately awkward read sizes: frames arrive split mid-JSON.
    for start in range(0, len(wire), 37):
        for event in decoder.feed(wire[start:start + 37]):
            turn.apply(event)
    for event in decoder.flush():
        turn.apply(event)

    for call in turn.tool_calls:
        print(f"[{call.name} {call.status.value}] {call.input}")
    print(turn.content)


if __name__ == "__main__":
    asyncio.run(main())
