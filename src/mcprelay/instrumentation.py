"""Optional OpenTelemetry instrumentation for mcprelay.

Call ``mcprelay.instrument()`` once at startup to enable tracing.
Requires ``opentelemetry-api`` to be installed; the relay works
identically without it.
"""

import importlib.util
import logging
from contextlib import asynccontextmanager

from mcprelay.events import DownstreamEvent, ToolCompleteEvent, ToolStartEvent

logger = logging.getLogger(__name__)

_tracer = None


def instrument(*, tracer_name: str = "mcprelay") -> None:
    """Enable OpenTelemetry tracing for relayed requests.

    Call once at startup, after configuring your TracerProvider.
    Requires ``opentelemetry-api``: ``pip install mcprelay[otel]``

    Example::

        from opentelemetry import trace
        from opentelemetry.sdk.trace import TracerProvider

        trace.set_tracer_provider(TracerProvider())

        import mcprelay
        mcprelay.instrument()

    Args:
        tracer_name: Name passed to ``trace.get_tracer()``.

    Raises:
        ImportError: If ``opentelemetry-api`` is not installed.
    """
    global _tracer
    if importlib.util.find_spec("opentelemetry.trace") is None:
        raise ImportError(
            "opentelemetry-api is required for instrumentation. "
            "Install it with: pip install mcprelay[otel]"
        )
    from opentelemetry import trace
    _tracer = trace.get_tracer(tracer_name)
    if isinstance(_tracer, trace.NoOpTracer):
        logger.info(
            "No TracerProvider configured; spans will be "
            "discarded. Set up a TracerProvider to export "
            "traces."
        )
    else:
        logger.info("mcprelay instrumentation enabled")


def uninstrument() -> None:
    """Disable OpenTelemetry tracing.

    Subsequent requests will not emit spans.
    """
    global _tracer
    _tracer = None


@asynccontextmanager
async def relay_span(model: str, mcp_url: str):
    """Wrap one relayed chat request in a ``chat`` span."""
    if _tracer is None:
        yield None
        return
    from opentelemetry.trace import SpanKind

    with _tracer.start_as_current_span(
        f"chat {model}",
        kind=SpanKind.CLIENT,
        attributes={
            "gen_ai.operation.name": "chat",
            "gen_ai.provider.name": "anthropic",
            "gen_ai.request.model": model,
            "mcp.server.url": mcp_url,
        },
    ) as span:
        yield span


def record_event(span, event: DownstreamEvent) -> None:
    """Attach tool lifecycle events to the request span."""
    if span is None:
        return
    if isinstance(event, ToolStartEvent):
        span.add_event(
            "tool_start",
            {"gen_ai.tool.name": event.name, "gen_ai.tool.call.id": event.id},
        )
    elif isinstance(event, ToolCompleteEvent):
        span.add_event(
            "tool_complete",
            {"gen_ai.tool.name": event.name, "gen_ai.tool.call.id": event.id},
        )


def record_error(span, exception: BaseException) -> None:
    """Record an exception and set ERROR status on a span.

    Sets ``error.type`` per GenAI semantic conventions.
    No-ops when *span* is ``None`` (tracing disabled).
    """
    if span is None:
        return
    from opentelemetry.trace import StatusCode

    span.set_status(StatusCode.ERROR, str(exception))
    span.record_exception(exception)
    span.set_attribute(
        "error.type", type(exception).__qualname__
    )
