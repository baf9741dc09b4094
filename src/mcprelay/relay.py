"""Per-request pipeline: upstream stream -> translator -> SSE frames.

A :class:`ChatRelay` is shared by the application; every call to
:meth:`ChatRelay.open` builds fresh request-scoped state and returns a
:class:`RelayStream` that owns the upstream connection until it is
exhausted or closed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from mcprelay.config import Settings
from mcprelay.errors import UpstreamSetupError, UpstreamStreamError
from mcprelay.events import DownstreamEvent
from mcprelay.instrumentation import record_error, record_event, relay_span
from mcprelay.message import ConversationMessage
from mcprelay.provider import ModelProvider, RawEventStream
from mcprelay.sse import sse_generator
from mcprelay.translator import LoggingObserver, StreamTranslator

logger = logging.getLogger(__name__)


class _SpanObserver(LoggingObserver):
    """Logs like :class:`LoggingObserver` and mirrors tool events onto a span."""

    def __init__(self, span):
        self.span = span

    def on_event(self, event: DownstreamEvent) -> None:
        super().on_event(event)
        record_event(self.span, event)

    def on_error(self, exc: BaseException) -> None:
        super().on_error(exc)
        record_error(self.span, exc)


async def _bounded(
    events: RawEventStream, deadline: float, timeout: float,
) -> AsyncIterator[Any]:
    """Yield from *events* until the loop clock passes *deadline*."""
    iterator = aiter(events)
    while True:
        try:
            async with asyncio.timeout_at(deadline):
                event = await anext(iterator)
        except StopAsyncIteration:
            return
        except TimeoutError as e:
            raise UpstreamStreamError(
                f"Upstream request timed out after {timeout:g} seconds"
            ) from e
        yield event


class RelayStream:
    """The SSE body of one relayed request.

    Iterate it exactly once. :meth:`aclose` releases the upstream
    connection and is safe to call more than once, e.g. both from the
    iteration's own cleanup and from a disconnect handler.
    """

    def __init__(
        self,
        upstream: RawEventStream,
        settings: Settings,
        mcp_url: str,
        deadline: float,
    ):
        self.upstream = upstream
        self.settings = settings
        self.mcp_url = mcp_url
        self.deadline = deadline
        self.translator: StreamTranslator | None = None
        self.closed = False
        self._frames = self._run()

    def __aiter__(self) -> AsyncIterator[str]:
        return self._frames

    async def __anext__(self) -> str:
        return await anext(self._frames)

    async def _run(self) -> AsyncIterator[str]:
        try:
            async with relay_span(self.settings.model, self.mcp_url) as span:
                self.translator = StreamTranslator(observer=_SpanObserver(span))
                raw = _bounded(
                    self.upstream, self.deadline, self.settings.request_timeout,
                )
                async for frame in sse_generator(self.translator.translate(raw)):
                    yield frame
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        logger.debug(f"Closing upstream stream for {self.mcp_url}")
        await self.upstream.close()


class ChatRelay:
    """Opens relayed chat streams against a model provider.

    Args:
        provider: Upstream bridge used for every request.
        settings: Relay configuration; ``request_timeout`` bounds the
            whole request, setup included.
    """

    def __init__(self, provider: ModelProvider, settings: Settings):
        self.provider = provider
        self.settings = settings

    async def open(
        self,
        messages: list[ConversationMessage],
        mcp_url: str | None = None,
    ) -> RelayStream:
        """Open the upstream request and return the frame stream.

        Raises:
            UpstreamSetupError: If the provider request cannot be opened
                before the deadline. Nothing has been streamed yet.
        """
        mcp_url = mcp_url or self.settings.default_mcp_url
        timeout = self.settings.request_timeout
        deadline = asyncio.get_running_loop().time() + timeout
        try:
            async with asyncio.timeout_at(deadline):
                upstream = await self.provider.open_stream(messages, mcp_url)
        except TimeoutError as e:
            raise UpstreamSetupError(
                f"Upstream request timed out after {timeout:g} seconds"
            ) from e
        return RelayStream(upstream, self.settings, mcp_url, deadline)
