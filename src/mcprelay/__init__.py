from mcprelay.config import Settings
from mcprelay.errors import (
    ConfigurationError,
    RelayError,
    StreamProtocolError,
    UpstreamSetupError,
    UpstreamStreamError,
)
from mcprelay.events import (
    DoneEvent,
    DownstreamEvent,
    ErrorEvent,
    TextEvent,
    ToolCompleteEvent,
    ToolStartEvent,
)
from mcprelay.instrumentation import instrument, uninstrument
from mcprelay.message import ConversationMessage, MessageRole
from mcprelay.projection import AssistantTurn, ClientToolCall, Conversation, ToolStatus
from mcprelay.sse import SSEDecoder, decode_stream, encode_frame, sse_generator
from mcprelay.translator import StreamTranslator

__all__ = [
    "AssistantTurn",
    "ClientToolCall",
    "ConfigurationError",
    "Conversation",
    "ConversationMessage",
    "DoneEvent",
    "DownstreamEvent",
    "ErrorEvent",
    "MessageRole",
    "RelayError",
    "SSEDecoder",
    "Settings",
    "StreamProtocolError",
    "StreamTranslator",
    "TextEvent",
    "ToolCompleteEvent",
    "ToolStartEvent",
    "ToolStatus",
    "UpstreamSetupError",
    "UpstreamStreamError",
    "decode_stream",
    "encode_frame",
    "instrument",
    "sse_generator",
    "uninstrument",
]
