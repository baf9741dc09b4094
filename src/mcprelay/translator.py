"""Translate a provider event stream into downstream events.

The translator keeps the minimum state needed to rebuild whole units
from fragments: the single open tool block and the assistant text seen
so far. ``feed()`` handles one raw event; ``translate()`` drives a whole
stream and guarantees it ends with ``done`` or ``error``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any, Protocol

from mcprelay.errors import StreamProtocolError
from mcprelay.events import (
    DoneEvent,
    DownstreamEvent,
    ErrorEvent,
    TextEvent,
    ToolCompleteEvent,
    ToolStartEvent,
)
from mcprelay.streaming import (
    BlockStart,
    BlockStop,
    JsonDelta,
    MessageStop,
    OtherEvent,
    RawProviderEvent,
    TextDelta,
    ToolCallState,
    coerce_raw_event,
)

logger = logging.getLogger(__name__)

INCOMPLETE_STREAM_MESSAGE = "Upstream stream ended before message_stop"


class TranslatorObserver(Protocol):
    """Optional sink notified as the translator makes progress."""

    def on_raw_event(self, event: RawProviderEvent) -> None: ...

    def on_event(self, event: DownstreamEvent) -> None: ...

    def on_error(self, exc: BaseException) -> None: ...


class LoggingObserver:
    """Observer that writes every step to the module logger at DEBUG."""

    def on_raw_event(self, event: RawProviderEvent) -> None:
        logger.debug(f"Raw event: {event}")

    def on_event(self, event: DownstreamEvent) -> None:
        logger.debug(f"Downstream event: {event.to_payload()}")

    def on_error(self, exc: BaseException) -> None:
        logger.warning(f"Translation aborted: {exc!r}")


class StreamTranslator:
    """Stateful converter from raw provider events to downstream events.

    One instance serves one request and is discarded afterwards.

    Args:
        observer: Receives raw events, emitted events and errors. Never
            required for correctness; defaults to :class:`LoggingObserver`.
    """

    def __init__(self, observer: TranslatorObserver | None = None):
        self.observer = observer or LoggingObserver()
        self.finished = False
        self._open_tool: ToolCallState | None = None
        self._text_parts: list[str] = []

    @property
    def text(self) -> str:
        """Assistant text forwarded so far."""
        return "".join(self._text_parts)

    @property
    def open_tool(self) -> ToolCallState | None:
        return self._open_tool

    def feed(self, event: Any) -> list[DownstreamEvent]:
        """Consume one raw event and return the events it produces.

        Raises:
            StreamProtocolError: If a tool block opens while another is
                still open.
        """
        if self.finished:
            return []
        raw = coerce_raw_event(event)
        self.observer.on_raw_event(raw)
        emitted = self._dispatch(raw)
        for out in emitted:
            self.observer.on_event(out)
        return emitted

    def _dispatch(self, raw: RawProviderEvent) -> list[DownstreamEvent]:
        if isinstance(raw, BlockStart):
            return self._on_block_start(raw)
        if isinstance(raw, TextDelta):
            if not raw.text:
                return []
            self._text_parts.append(raw.text)
            return [TextEvent(content=raw.text)]
        if isinstance(raw, JsonDelta):
            if self._open_tool is None:
                logger.warning("input_json_delta received with no open tool block")
                return []
            self._open_tool.feed(raw.partial_json)
            return []
        if isinstance(raw, BlockStop):
            return self._on_block_stop()
        if isinstance(raw, MessageStop):
            self.finished = True
            return [DoneEvent()]
        if isinstance(raw, OtherEvent):
            return []
        raise TypeError(f"unhandled raw event: {raw!r}")

    def _on_block_start(self, raw: BlockStart) -> list[DownstreamEvent]:
        if not raw.is_tool or not raw.name:
            return []
        if self._open_tool is not None:
            raise StreamProtocolError(
                f"tool block '{raw.name}' opened while "
                f"'{self._open_tool.name}' is still open"
            )
        self._open_tool = ToolCallState(
            name=raw.name,
            id=raw.id or "",
        )
        return [ToolStartEvent(name=raw.name, id=raw.id or "")]

    def _on_block_stop(self) -> list[DownstreamEvent]:
        tool = self._open_tool
        if tool is None:
            return []
        self._open_tool = None
        return [ToolCompleteEvent(name=tool.name, id=tool.id, input=tool.parse_input())]

    async def translate(
        self, raw_events: AsyncIterable[Any],
    ) -> AsyncIterator[DownstreamEvent]:
        """Translate a whole raw stream.

        Always ends with exactly one ``done`` or ``error`` event. Any
        exception raised while reading the stream becomes an ``error``
        event; cancellation is not intercepted.
        """
        try:
            async for raw in raw_events:
                for event in self.feed(raw):
                    yield event
                if self.finished:
                    return
        except Exception as e:
            self.observer.on_error(e)
            self.finished = True
            error = ErrorEvent(message=str(e) or type(e).__name__)
            self.observer.on_event(error)
            yield error
            return

        self.finished = True
        error = ErrorEvent(message=INCOMPLETE_STREAM_MESSAGE)
        self.observer.on_event(error)
        yield error
