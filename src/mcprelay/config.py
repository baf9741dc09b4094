import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, ValidationError

from mcprelay.errors import ConfigurationError

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MCP_URL = "https://penumbra--express-mcp-mcp-server.modal.run/mcp"
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant with access to tools via MCP "
    "(Model Context Protocol). Use the available tools to help users "
    "accomplish their tasks. Be concise, helpful, and use tools when "
    "appropriate to provide accurate, real-time information."
)
MCP_BETA_FLAG = "mcp-client-2025-04-04"


class Settings(BaseModel):
    """Process-wide relay configuration.

    Build it with :meth:`from_env` at startup; a missing API key fails
    there rather than on the first request.

    Args:
        api_key: Anthropic API key.
        model: Model identifier sent upstream.
        max_tokens: Completion token ceiling per request.
        system_prompt: System prompt prepended to every conversation.
        default_mcp_url: Tool server used when a request has no ``mcpUrl``.
        mcp_server_name: Name the tool server is registered under.
        request_timeout: Overall per-request deadline in seconds.
    """

    api_key: str = Field(min_length=1)
    model: str = DEFAULT_MODEL
    max_tokens: int = Field(default=4096, gt=0)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    default_mcp_url: str = DEFAULT_MCP_URL
    mcp_server_name: str = "mcp-tools"
    request_timeout: float = Field(default=60.0, gt=0)

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Load settings from ``ANTHROPIC_API_KEY`` and ``MCPRELAY_*`` variables.

        Raises:
            ConfigurationError: If the API key is absent or a value is
                invalid.
        """
        env = os.environ if environ is None else environ
        api_key = (env.get("ANTHROPIC_API_KEY") or "").strip()
        if not api_key:
            raise ConfigurationError(
                "ANTHROPIC_API_KEY is not set. Export it or add it to your "
                "environment before starting the relay."
            )

        overrides = {
            "model": env.get("MCPRELAY_MODEL"),
            "max_tokens": env.get("MCPRELAY_MAX_TOKENS"),
            "system_prompt": env.get("MCPRELAY_SYSTEM_PROMPT"),
            "default_mcp_url": env.get("MCPRELAY_DEFAULT_MCP_URL"),
            "mcp_server_name": env.get("MCPRELAY_MCP_SERVER_NAME"),
            "request_timeout": env.get("MCPRELAY_REQUEST_TIMEOUT"),
        }
        try:
            return cls(
                api_key=api_key,
                **{k: v for k, v in overrides.items() if v},
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid relay configuration: {e}") from e
