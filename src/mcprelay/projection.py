"""Client-side projection of downstream events into chat state.

:class:`AssistantTurn` is what a chat UI renders for one assistant
reply: the text streamed so far and a pill per tool call.
:class:`Conversation` owns the message history sent with each request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mcprelay.events import (
    DoneEvent,
    DownstreamEvent,
    ErrorEvent,
    TextEvent,
    ToolCompleteEvent,
    ToolStartEvent,
)
from mcprelay.message import ConversationMessage, MessageRole


class ToolStatus(Enum):
    RUNNING = "running"
    COMPLETE = "complete"


@dataclass
class ClientToolCall:
    name: str
    id: str
    status: ToolStatus = ToolStatus.RUNNING
    input: dict[str, Any] | None = None


@dataclass
class AssistantTurn:
    """An assistant message being filled in from the event stream."""

    content: str = ""
    tool_calls: list[ClientToolCall] = field(default_factory=list)
    finished: bool = False
    error: str | None = None

    def apply(self, event: DownstreamEvent) -> ClientToolCall | None:
        """Fold one event into the turn.

        Returns the tool call that was created or completed, if any.
        Events after ``done`` or ``error`` are ignored.
        """
        if self.finished:
            return None
        if isinstance(event, TextEvent):
            self.content += event.content
        elif isinstance(event, ToolStartEvent):
            call = ClientToolCall(
                name=event.name,
                id=event.id or f"tool-{len(self.tool_calls)}",
            )
            self.tool_calls.append(call)
            return call
        elif isinstance(event, ToolCompleteEvent):
            call = self._match_completion(event)
            if call is not None:
                call.status = ToolStatus.COMPLETE
                call.input = event.input
            return call
        elif isinstance(event, ErrorEvent):
            self.error = event.message
            self.content = f"Error: {event.message}"
            self.finished = True
        elif isinstance(event, DoneEvent):
            self.finished = True
        return None

    def _match_completion(self, event: ToolCompleteEvent) -> ClientToolCall | None:
        # Rule 1: the provider gave an id, so only an exact id match counts.
        if event.id:
            for call in self.tool_calls:
                if call.id == event.id:
                    return call
            return None
        # Rule 2: no id; take the first running call with the same name.
        for call in self.tool_calls:
            if call.name == event.name and call.status is ToolStatus.RUNNING:
                return call
        return None

    @property
    def running_tools(self) -> list[ClientToolCall]:
        return [c for c in self.tool_calls if c.status is ToolStatus.RUNNING]


class Conversation:
    """Append-only chat history plus the reply currently streaming in."""

    def __init__(self):
        self.messages: list[ConversationMessage] = []
        self.turns: list[AssistantTurn] = []

    def ask(self, content: str) -> AssistantTurn:
        """Append a user message and a placeholder assistant turn."""
        self.messages.append(ConversationMessage(role=MessageRole.USER, content=content))
        turn = AssistantTurn()
        self.turns.append(turn)
        return turn

    def history(self) -> list[ConversationMessage]:
        """Messages to send upstream for the pending turn."""
        return list(self.messages)

    def commit(self, turn: AssistantTurn) -> None:
        """Record a finished reply so later requests carry it as context."""
        if turn.error is None and turn.content:
            self.messages.append(
                ConversationMessage(role=MessageRole.ASSISTANT, content=turn.content)
            )
