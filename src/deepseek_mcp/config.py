"""Runtime configuration.

Defaults match the ports and endpoints the desktop client expects. Every
field can be overridden from the environment via ``from_env()``; CLI options
override both.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from . import SERVER_NAME, __version__

DEFAULT_HOST = "127.0.0.1"
DEFAULT_HTTP_PORT = 3000
DEFAULT_SOCKET_PORT = 3001
DEFAULT_CHAT_API_BASE = "https://api.deepseek.com"

# Recognized startup selectors, in the order shown by --help
TRANSPORT_CHOICES = ("pipe", "socket", "http")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {value!r}") from e


@dataclass
class ServerConfig:
    """Configuration for the capability server."""

    transport: str = "pipe"
    host: str = DEFAULT_HOST
    http_port: int = DEFAULT_HTTP_PORT
    socket_port: int = DEFAULT_SOCKET_PORT
    log_level: str | None = None

    # Reported by /health and on connect
    name: str = SERVER_NAME
    version: str = __version__

    @property
    def port(self) -> int:
        """Listening port for the selected transport (unused for pipe)."""
        return self.socket_port if self.transport == "socket" else self.http_port

    def effective_log_level(self) -> str:
        """Pipe mode stays quiet by default, listeners log startup at INFO."""
        if self.log_level:
            return self.log_level.upper()
        return "WARNING" if self.transport == "pipe" else "INFO"

    @classmethod
    def from_env(cls, transport: str = "pipe") -> ServerConfig:
        """Build a config from ``DEEPSEEK_MCP_*`` environment variables."""
        return cls(
            transport=transport,
            host=os.environ.get("DEEPSEEK_MCP_HOST", DEFAULT_HOST),
            http_port=_env_int("DEEPSEEK_MCP_HTTP_PORT", DEFAULT_HTTP_PORT),
            socket_port=_env_int("DEEPSEEK_MCP_SOCKET_PORT", DEFAULT_SOCKET_PORT),
            log_level=os.environ.get("DEEPSEEK_MCP_LOG_LEVEL") or None,
        )


@dataclass
class ClientConfig:
    """Configuration for the chat client and its transports."""

    # Connection mode: "pipe" | "socket" | "http"
    mode: str = "socket"
    address: str | None = None
    timeout: float = 30.0

    # Pipe mode launches the server as a subprocess
    command: list[str] = field(default_factory=lambda: ["deepseek-mcp-server", "pipe"])

    # External chat API
    api_key: str | None = None
    api_base: str = DEFAULT_CHAT_API_BASE
    model: str = "deepseek-chat"

    def resolved_address(self) -> str:
        """Server address for socket/http modes, falling back to the defaults."""
        if self.address:
            return self.address
        if self.mode == "http":
            return f"http://localhost:{DEFAULT_HTTP_PORT}"
        return f"ws://localhost:{DEFAULT_SOCKET_PORT}"

    @classmethod
    def from_env(cls, mode: str = "socket") -> ClientConfig:
        """Build a config from ``DEEPSEEK_*`` environment variables."""
        return cls(
            mode=mode,
            address=os.environ.get("DEEPSEEK_MCP_ADDRESS") or None,
            api_key=os.environ.get("DEEPSEEK_API_KEY") or None,
            api_base=os.environ.get("DEEPSEEK_API_BASE", DEFAULT_CHAT_API_BASE),
        )
