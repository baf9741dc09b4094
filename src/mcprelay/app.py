"""FastAPI application exposing the relay over HTTP."""

import logging

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field
from starlette.background import BackgroundTask

from mcprelay.config import Settings
from mcprelay.errors import UpstreamSetupError
from mcprelay.message import ConversationMessage
from mcprelay.provider import AnthropicMCPProvider, ModelProvider
from mcprelay.relay import ChatRelay

logger = logging.getLogger(__name__)

MESSAGES_REQUIRED = "Messages are required"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class ChatRequest(BaseModel):
    messages: list[ConversationMessage] = Field(min_length=1)
    mcp_url: str | None = Field(default=None, alias="mcpUrl")

    model_config = {"populate_by_name": True}


router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/chat", response_model=None)
async def chat(request: Request, body: ChatRequest) -> StreamingResponse | JSONResponse:
    """Relay a conversation upstream and stream the reply as SSE frames.

    Setup failures are answered with a JSON error; once streaming has
    begun, failures arrive in-band as an ``error`` frame.
    """
    relay: ChatRelay = request.app.state.relay
    try:
        stream = await relay.open(body.messages, body.mcp_url)
    except UpstreamSetupError as e:
        return JSONResponse({"error": str(e)}, status_code=500)
    except Exception as e:
        logger.exception("Unexpected error opening relay stream")
        return JSONResponse({"error": str(e) or "Unknown error"}, status_code=500)

    return StreamingResponse(
        stream,
        media_type="text/event-stream",
        headers=SSE_HEADERS,
        background=BackgroundTask(stream.aclose),
    )


def _messages_missing(error: dict) -> bool:
    loc = tuple(error.get("loc", ()))
    if loc not in (("body",), ("body", "messages")):
        return False
    if error.get("type") in ("missing", "too_short"):
        return True
    # ``"messages": null`` fails as a list_type error on a None input.
    return loc == ("body", "messages") and error.get("input", ...) is None


async def _validation_error_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    errors = exc.errors()
    if any(_messages_missing(error) for error in errors):
        return JSONResponse({"error": MESSAGES_REQUIRED}, status_code=400)
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    detail = first.get("msg", "Invalid request")
    message = f"Invalid request: {where}: {detail}" if where else f"Invalid request: {detail}"
    logger.warning(f"Rejected chat request: {message}")
    return JSONResponse({"error": message}, status_code=500)


def create_app(
    settings: Settings | None = None,
    provider: ModelProvider | None = None,
) -> FastAPI:
    """Build the relay application.

    Args:
        settings: Defaults to :meth:`Settings.from_env`, which raises
            :class:`~mcprelay.errors.ConfigurationError` when the API key
            is missing.
        provider: Defaults to :class:`AnthropicMCPProvider`.
    """
    settings = settings or Settings.from_env()
    provider = provider or AnthropicMCPProvider(settings)

    app = FastAPI(title="mcprelay")
    app.state.settings = settings
    app.state.relay = ChatRelay(provider, settings)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(router, prefix="/api")
    return app
