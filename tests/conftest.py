import asyncio

import pytest

from mcprelay.config import Settings
from mcprelay.message import ConversationMessage, MessageRole
from mcprelay.provider import ModelProvider


# ---------------------------------------------------------------------------
# Raw event builders (mirror the Anthropic streaming event shape)
# ---------------------------------------------------------------------------

def block_start(block_type: str, name: str | None = None, id: str | None = None,
                index: int = 0, input: dict | None = None) -> dict:
    block = {"type": block_type}
    if name is not None:
        block["name"] = name
    if id is not None:
        block["id"] = id
    if input is not None:
        block["input"] = input
    return {"type": "content_block_start", "index": index, "content_block": block}


def text_delta(text: str, index: int = 0) -> dict:
    return {
        "type": "content_block_delta",
        "index": index,
        "delta": {"type": "text_delta", "text": text},
    }


def json_delta(partial_json: str, index: int = 0) -> dict:
    return {
        "type": "content_block_delta",
        "index": index,
        "delta": {"type": "input_json_delta", "partial_json": partial_json},
    }


def block_stop(index: int = 0) -> dict:
    return {"type": "content_block_stop", "index": index}


def message_stop() -> dict:
    return {"type": "message_stop"}


def tool_call_events(name: str, id: str, fragments: list[str], index: int = 0) -> list[dict]:
    """A complete tool block: start, JSON fragments, stop."""
    return [
        block_start("tool_use", name=name, id=id, index=index),
        *[json_delta(f, index=index) for f in fragments],
        block_stop(index=index),
    ]


# ---------------------------------------------------------------------------
# Fake upstream
# ---------------------------------------------------------------------------

class FakeEventStream:
    """Scripted provider stream. No network calls.

    ``fail_after`` raises ``error`` once that many events were yielded;
    ``delay`` sleeps before every event.
    """

    def __init__(self, events, fail_after: int | None = None,
                 error: Exception | None = None, delay: float = 0.0):
        self.events = list(events)
        self.fail_after = fail_after
        self.error = error or ConnectionError("connection reset by peer")
        self.delay = delay
        self.yielded = 0
        self.close_count = 0

    async def __aiter__(self):
        for event in self.events:
            if self.fail_after is not None and self.yielded >= self.fail_after:
                raise self.error
            if self.delay:
                await asyncio.sleep(self.delay)
            self.yielded += 1
            yield event
        if self.fail_after is not None and self.yielded >= self.fail_after:
            raise self.error

    async def close(self):
        self.close_count += 1

    @property
    def closed(self) -> bool:
        return self.close_count > 0


class MockProvider(ModelProvider):
    """Provider that returns pre-queued streams."""

    def __init__(self):
        self.streams: list[FakeEventStream] = []
        self.setup_error: Exception | None = None
        self.setup_delay: float = 0.0
        self.call_log: list[dict] = []

    async def open_stream(self, messages, mcp_url):
        self.call_log.append({"messages": messages, "mcp_url": mcp_url})
        if self.setup_delay:
            await asyncio.sleep(self.setup_delay)
        if self.setup_error is not None:
            raise self.setup_error
        return self.streams.pop(0)


@pytest.fixture
def settings():
    return Settings(api_key="test-key", request_timeout=5.0)


@pytest.fixture
def mock_provider():
    return MockProvider()


@pytest.fixture
def user_messages():
    return [ConversationMessage(role=MessageRole.USER, content="find x")]
