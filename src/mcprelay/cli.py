"""Command line entry point.

Usage:
    Add ANTHROPIC_API_KEY=sk-... to .env, then:
    uv run --env-file=.env mcprelay serve
    uv run mcprelay chat --url http://127.0.0.1:8000/api/chat
"""

import argparse
import asyncio
import logging
import sys

import httpx

from mcprelay.errors import ConfigurationError
from mcprelay.events import TextEvent
from mcprelay.projection import AssistantTurn, Conversation, ToolStatus
from mcprelay.sse import decode_stream

LOG_FORMAT = '%(asctime)s:%(name)s:%(levelname)s:%(message)s'


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        datefmt='%Y-%m-%d %H:%M:%S',
    )


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    from mcprelay.app import create_app

    configure_logging(args.log_level)
    try:
        app = create_app()
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    if args.trace:
        from mcprelay.instrumentation import instrument
        instrument()
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


async def stream_turn(
    client: httpx.AsyncClient,
    url: str,
    conversation: Conversation,
    turn: AssistantTurn,
    mcp_url: str | None = None,
) -> AssistantTurn:
    """POST the conversation and fold the streamed reply into *turn*."""
    body = {"messages": [m.model_dump() for m in conversation.history()]}
    if mcp_url:
        body["mcpUrl"] = mcp_url

    async with client.stream("POST", url, json=body) as response:
        if response.status_code != 200:
            await response.aread()
            try:
                message = response.json().get("error", response.text)
            except ValueError:
                message = response.text
            turn.error = message
            turn.content = f"Error: {message}"
            turn.finished = True
            return turn

        async for event in decode_stream(response.aiter_bytes()):
            call = turn.apply(event)
            if isinstance(event, TextEvent):
                print(event.content, end="", flush=True)
            elif call is not None and call.status is ToolStatus.RUNNING:
                print(f"\n[{call.name} …]", flush=True)
            elif call is not None:
                print(f"[{call.name} ✓] {call.input}", flush=True)
            if turn.finished:
                break
    return turn


async def chat(args: argparse.Namespace) -> int:
    conversation = Conversation()
    print("MCP chat (Ctrl-D to quit)\n")
    async with httpx.AsyncClient(timeout=None) as client:
        while True:
            try:
                user_input = await asyncio.to_thread(input, "You: ")
            except (KeyboardInterrupt, EOFError):
                print("\nGoodbye!")
                return 0
            if not user_input.strip():
                continue

            turn = conversation.ask(user_input.strip())
            print("Assistant: ", end="", flush=True)
            try:
                await stream_turn(client, args.url, conversation, turn, args.mcp_url)
            except httpx.HTTPError as e:
                turn.error = str(e)
                turn.content = "Sorry, something went wrong. Please try again."
            if turn.error is not None:
                print(turn.content)
            conversation.commit(turn)
            print("\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mcprelay", description="MCP chat relay")
    commands = parser.add_subparsers(dest="command", required=True)

    serve_parser = commands.add_parser("serve", help="run the HTTP relay")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--log-level", default="INFO")
    serve_parser.add_argument("--trace", action="store_true")

    chat_parser = commands.add_parser("chat", help="chat with a running relay")
    chat_parser.add_argument("--url", default="http://127.0.0.1:8000/api/chat")
    chat_parser.add_argument("--mcp-url", default=None)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "serve":
        return serve(args)
    return asyncio.run(chat(args))


if __name__ == "__main__":
    sys.exit(main())
