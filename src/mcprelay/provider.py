import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

import httpx
from anthropic import APIError, AsyncAnthropic

from mcprelay.config import MCP_BETA_FLAG, Settings
from mcprelay.errors import UpstreamSetupError, UpstreamStreamError
from mcprelay.message import ConversationMessage, MessageRole
from mcprelay.streaming import RawProviderEvent, coerce_raw_event

logger = logging.getLogger(__name__)


class RawEventStream(Protocol):
    """An open provider stream: async-iterable and closable."""

    def __aiter__(self) -> AsyncIterator[Any]: ...

    async def close(self) -> None: ...


class ModelProvider:
    """Opens one streaming request with a tool server attached."""

    async def open_stream(
            self,
            messages: list[ConversationMessage],
            mcp_url: str,
    ) -> RawEventStream:
        raise NotImplementedError


class AnthropicEventStream:
    """Wraps the SDK stream so failures surface as relay errors.

    Events are coerced into :data:`RawProviderEvent` as they arrive.
    """

    def __init__(self, stream):
        self._stream = stream
        self._closed = False

    async def __aiter__(self) -> AsyncIterator[RawProviderEvent]:
        try:
            async for event in self._stream:
                yield coerce_raw_event(event)
        except (APIError, httpx.HTTPError) as e:
            raise UpstreamStreamError(f"Upstream stream failed: {e}") from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._stream.close()


class AnthropicMCPProvider(ModelProvider):
    """Anthropic Messages API with the MCP connector enabled.

    Retries are disabled: a failed request is reported once instead of
    being replayed behind the client's back.
    """

    def __init__(self, settings: Settings, client: AsyncAnthropic | None = None):
        self.settings = settings
        if client is None:
            client = AsyncAnthropic(
                api_key=settings.api_key,
                max_retries=0,
                timeout=settings.request_timeout,
            )
        self.client = client

    def build_request(
            self,
            messages: list[ConversationMessage],
            mcp_url: str,
    ) -> dict[str, Any]:
        if not messages:
            raise UpstreamSetupError("Conversation history is empty")
        if messages[0].role != MessageRole.USER:
            raise UpstreamSetupError("Conversation must start with a user message")
        return dict(
            model=self.settings.model,
            max_tokens=self.settings.max_tokens,
            system=self.settings.system_prompt,
            messages=[m.model_dump() for m in messages],
            mcp_servers=[{
                "type": "url",
                "url": mcp_url,
                "name": self.settings.mcp_server_name,
            }],
            betas=[MCP_BETA_FLAG],
            stream=True,
        )

    async def open_stream(
            self,
            messages: list[ConversationMessage],
            mcp_url: str,
    ) -> AnthropicEventStream:
        request = self.build_request(messages, mcp_url)
        logger.info(f"MCP request to {mcp_url} ({len(messages)} messages)")
        try:
            stream = await self.client.beta.messages.create(**request)
        except APIError as e:
            logger.error(f"Upstream request failed: {e}")
            raise UpstreamSetupError(str(e)) from e
        return AnthropicEventStream(stream)
