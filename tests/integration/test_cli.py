"""Tests for the terminal chat client against the in-process app."""

import threading

import pytest
from httpx import ASGITransport, AsyncClient

from mcprelay.app import create_app
from mcprelay.cli import build_parser, chat, stream_turn
from mcprelay.errors import UpstreamSetupError
from mcprelay.projection import Conversation, ToolStatus

from tests.conftest import FakeEventStream, message_stop, text_delta, tool_call_events


def test_parser_defaults():
    args = build_parser().parse_args(["chat"])
    assert args.url == "http://127.0.0.1:8000/api/chat"
    assert args.mcp_url is None

    args = build_parser().parse_args(["serve", "--port", "9000"])
    assert args.port == 9000
    assert args.host == "127.0.0.1"


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


class TestStreamTurn:
    @pytest.mark.asyncio
    async def test_turn_filled_from_stream(self, settings, mock_provider, capsys):
        mock_provider.streams = [FakeEventStream([
            *tool_call_events("search", "t1", ['{"q": "x"}']),
            text_delta("Found "),
            text_delta("it"),
            message_stop(),
        ])]
        app = create_app(settings=settings, provider=mock_provider)
        conversation = Conversation()
        turn = conversation.ask("find x")

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            await stream_turn(client, "/api/chat", conversation, turn, "https://tools.example/mcp")

        assert turn.finished
        assert turn.content == "Found it"
        assert [(c.name, c.status) for c in turn.tool_calls] == [("search", ToolStatus.COMPLETE)]
        assert turn.tool_calls[0].input == {"q": "x"}
        assert mock_provider.call_log[0]["mcp_url"] == "https://tools.example/mcp"
        assert "Found it" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_setup_error_recorded_on_turn(self, settings, mock_provider):
        mock_provider.setup_error = UpstreamSetupError("invalid x-api-key")
        app = create_app(settings=settings, provider=mock_provider)
        conversation = Conversation()
        turn = conversation.ask("hi")

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            await stream_turn(client, "/api/chat", conversation, turn)

        assert turn.error == "invalid x-api-key"
        assert turn.content == "Error: invalid x-api-key"


@pytest.mark.asyncio
async def test_chat_prompts_off_the_event_loop_thread(monkeypatch, capsys):
    prompt_threads = []

    def fake_input(prompt=""):
        prompt_threads.append(threading.get_ident())
        raise EOFError

    monkeypatch.setattr("builtins.input", fake_input)

    assert await chat(build_parser().parse_args(["chat"])) == 0
    assert prompt_threads and prompt_threads[0] != threading.get_ident()
    assert "Goodbye!" in capsys.readouterr().out
