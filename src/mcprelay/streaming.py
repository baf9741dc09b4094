"""Streaming primitives for provider responses.

Provider events are coerced into the closed :data:`RawProviderEvent`
union before translation. The :class:`ToolCallState` reassembles a tool
call whose input arrives as JSON fragments across several deltas.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

TOOL_BLOCK_TYPES = frozenset({"tool_use", "mcp_tool_use"})


@dataclass
class BlockStart:
    """``content_block_start``: a new text or tool block was opened."""

    block_type: str
    name: str | None = None
    id: str | None = None
    index: int = 0

    @property
    def is_tool(self) -> bool:
        return self.block_type in TOOL_BLOCK_TYPES


@dataclass
class TextDelta:
    """``content_block_delta`` carrying a ``text_delta``."""

    text: str
    index: int = 0


@dataclass
class JsonDelta:
    """``content_block_delta`` carrying an ``input_json_delta``."""

    partial_json: str
    index: int = 0


@dataclass
class BlockStop:
    index: int = 0


@dataclass
class MessageStop:
    pass


@dataclass
class OtherEvent:
    """Any provider event the translator does not act on."""

    type: str = ""


RawProviderEvent = BlockStart | TextDelta | JsonDelta | BlockStop | MessageStop | OtherEvent

_RAW_EVENT_TYPES = (BlockStart, TextDelta, JsonDelta, BlockStop, MessageStop, OtherEvent)


def _field(obj: Any, name: str, default: Any = None) -> Any:
    # SDK events are pydantic models; recorded fixtures are plain dicts.
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def coerce_raw_event(event: Any) -> RawProviderEvent:
    """Map a provider stream event onto the :data:`RawProviderEvent` union.

    Accepts Anthropic SDK event objects, their ``dict`` form, or an
    already-coerced event (returned unchanged).
    """
    if isinstance(event, _RAW_EVENT_TYPES):
        return event

    event_type = _field(event, "type") or ""
    index = _field(event, "index") or 0

    if event_type == "content_block_start":
        block = _field(event, "content_block") or {}
        return BlockStart(
            block_type=_field(block, "type") or "",
            name=_field(block, "name"),
            id=_field(block, "id"),
            index=index,
        )
    if event_type == "content_block_delta":
        delta = _field(event, "delta") or {}
        delta_type = _field(delta, "type")
        if delta_type == "text_delta":
            return TextDelta(text=_field(delta, "text") or "", index=index)
        if delta_type == "input_json_delta":
            return JsonDelta(partial_json=_field(delta, "partial_json") or "", index=index)
        return OtherEvent(type=f"content_block_delta.{delta_type}")
    if event_type == "content_block_stop":
        return BlockStop(index=index)
    if event_type == "message_stop":
        return MessageStop()
    return OtherEvent(type=event_type)


@dataclass
class ToolCallState:
    """An open tool block whose input is still being streamed."""

    name: str
    id: str = ""
    accumulated_json: str = ""

    def feed(self, partial_json: str) -> None:
        self.accumulated_json += partial_json

    def parse_input(self) -> dict[str, Any]:
        """Parse the accumulated fragments into the tool input object.

        Unparsable input is wrapped as ``{"raw": <text>}`` and a valid
        non-object value as ``{"value": <value>}``, so the result is
        always an object.
        """
        text = self.accumulated_json
        if not text:
            return {}
        parsed = _loads(text)
        if parsed is _UNPARSABLE:
            return {"raw": text}
        if isinstance(parsed, dict):
            return parsed
        return {"value": parsed}


_UNPARSABLE = object()


def _loads(text: str) -> Any:
    """``json.loads`` that returns ``_UNPARSABLE`` instead of raising."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return _UNPARSABLE
