"""Downstream events emitted by the stream translator.

These are the stable wire contract consumed by chat clients. Each event
serializes to a flat JSON object whose ``type`` field names the variant.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar


@dataclass
class DownstreamEvent:
    """Base for all downstream events."""

    type: ClassVar[str] = ""

    def to_payload(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass
class TextEvent(DownstreamEvent):
    """A fragment of assistant text, forwarded as soon as it arrives."""

    type: ClassVar[str] = "text"
    content: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.type, "content": self.content}


@dataclass
class ToolStartEvent(DownstreamEvent):
    type: ClassVar[str] = "tool_start"
    name: str = ""
    id: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.type, "name": self.name, "id": self.id}


@dataclass
class ToolCompleteEvent(DownstreamEvent):
    """A tool call whose input has been fully assembled."""

    type: ClassVar[str] = "tool_complete"
    name: str = ""
    id: str = ""
    input: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "id": self.id,
            "input": self.input,
        }


@dataclass
class DoneEvent(DownstreamEvent):
    """Final event of a successful response."""

    type: ClassVar[str] = "done"

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.type}


@dataclass
class ErrorEvent(DownstreamEvent):
    """Terminal failure. Clients treat it like ``done``."""

    type: ClassVar[str] = "error"
    message: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {"type": self.type, "error": self.message}


def event_from_payload(payload: Any) -> DownstreamEvent:
    """Rebuild a downstream event from its decoded JSON payload.

    Raises:
        ValueError: If the payload is not an object, has an unknown
            ``type`` or is missing a required field.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
    kind = payload.get("type")
    try:
        if kind == TextEvent.type:
            return TextEvent(content=str(payload["content"]))
        if kind == ToolStartEvent.type:
            return ToolStartEvent(
                name=str(payload["name"]), id=str(payload.get("id") or ""),
            )
        if kind == ToolCompleteEvent.type:
            tool_input = payload.get("input") or {}
            if not isinstance(tool_input, dict):
                raise ValueError("tool_complete input must be an object")
            return ToolCompleteEvent(
                name=str(payload["name"]),
                id=str(payload.get("id") or ""),
                input=tool_input,
            )
        if kind == DoneEvent.type:
            return DoneEvent()
        if kind == ErrorEvent.type:
            return ErrorEvent(message=str(payload.get("error") or "Unknown error"))
    except KeyError as e:
        raise ValueError(f"{kind} event is missing field {e}") from e
    raise ValueError(f"unknown event type: {kind!r}")
