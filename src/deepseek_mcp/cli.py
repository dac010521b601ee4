"""DeepSeek MCP command line.

The server runs exactly one transport, chosen by a positional selector:

Usage:
    deepseek-mcp-server                    # Pipe mode (default)
    deepseek-mcp-server pipe               # stdin/stdout, newline-delimited JSON
    deepseek-mcp-server socket             # WebSocket on port 3001
    deepseek-mcp-server http               # POST /api/mcp on port 3000
    deepseek-mcp-server http --port 8080   # Listener with custom port

    deepseek-mcp-chat                      # Interactive chat over the socket transport
    deepseek-mcp-chat --transport pipe     # Spawn the server as a subprocess
"""

from __future__ import annotations

import asyncio
import functools
import logging
import sys

import click

from . import __version__
from .capabilities import build_registry
from .client import (
    ChatClient,
    ChatMessage,
    ChatSession,
    ClientCorrelator,
    Role,
    create_client_transport,
)
from .config import TRANSPORT_CHOICES, ClientConfig, ServerConfig
from .errors import CapabilityError
from .protocol import RequestHandler
from .transport import create_binding

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(level: str) -> None:
    # stdout carries protocol traffic in pipe mode, so logs always go to stderr
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


@click.command()
@click.argument(
    "transport",
    type=click.Choice(TRANSPORT_CHOICES),
    default="pipe",
    required=False,
)
@click.option("--host", default=None, help="Host to bind to (socket/http)")
@click.option("--port", type=int, default=None, help="Port to bind to (socket/http)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (default: WARNING for pipe, INFO otherwise)",
)
@click.version_option(__version__, prog_name="deepseek-mcp-server")
def main(transport: str, host: str | None, port: int | None, log_level: str | None) -> None:
    """DeepSeek MCP server - file, search, prompt and sample capabilities.

    TRANSPORT selects how clients connect: pipe (default), socket or http.
    """
    if transport == "pipe" and (host is not None or port is not None):
        raise click.UsageError(
            "--host and --port require socket or http mode. "
            "Pipe mode talks over stdin/stdout."
        )

    try:
        config = ServerConfig.from_env(transport)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    if host is not None:
        config.host = host
    if port is not None:
        if transport == "socket":
            config.socket_port = port
        else:
            config.http_port = port
    if log_level is not None:
        config.log_level = log_level

    _configure_logging(config.effective_log_level())

    try:
        registry = build_registry()
    except CapabilityError as e:
        raise click.ClickException(f"Failed to register capabilities: {e}") from e

    binding = create_binding(RequestHandler(registry), config)

    if transport == "pipe":
        click.echo("Starting DeepSeek MCP server in pipe mode", err=True)
    else:
        click.echo(
            f"Starting DeepSeek MCP server on {transport}://{config.host}:{config.port}",
            err=True,
        )
        click.echo("Press Ctrl+C to stop", err=True)

    try:
        asyncio.run(binding.serve())
    except KeyboardInterrupt:
        click.echo("\nShutting down", err=True)


# =============================================================================
# Chat client
# =============================================================================


def _print_message(message: ChatMessage, echo_user: bool = True) -> None:
    if message.role == Role.USER and not echo_user:
        return
    prefix = {"user": "you", "assistant": "assistant", "system": "system"}[message.role.value]
    click.echo(f"[{prefix}] {message.text}", err=message.is_error)


async def _read_input() -> str | None:
    loop = asyncio.get_running_loop()
    line = await loop.run_in_executor(None, sys.stdin.readline)
    return line if line else None


async def _run_chat(config: ClientConfig, echo_user: bool) -> int:
    transport = create_client_transport(config)
    session = ChatSession(
        transport,
        correlator=ClientCorrelator(),
        chat_client=ChatClient(api_base=config.api_base, model=config.model),
        api_key=config.api_key,
        response_timeout=config.timeout,
        listener=functools.partial(_print_message, echo_user=echo_user),
    )

    if not await session.connect():
        return 1

    try:
        while True:
            line = await _read_input()
            if line is None:
                break
            await session.send(line)
    finally:
        await session.drain()
        await session.disconnect()
    return 0


@click.command()
@click.option(
    "--transport",
    "mode",
    type=click.Choice(TRANSPORT_CHOICES),
    default="socket",
    help="How to reach the server",
)
@click.option("--address", default=None, help="Server URL (socket/http)")
@click.option("--api-key", envvar="DEEPSEEK_API_KEY", default=None, help="DeepSeek API key")
@click.option("--timeout", type=float, default=30.0, help="Seconds to wait for each tool result")
@click.option("--echo/--no-echo", default=False, help="Echo user input back")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def chat(
    mode: str,
    address: str | None,
    api_key: str | None,
    timeout: float,
    echo: bool,
    verbose: bool,
) -> None:
    """Interactive chat: /read, /write and /search call server tools.

    Other input is sent to the DeepSeek chat API when an API key is set.
    """
    _configure_logging("DEBUG" if verbose else "WARNING")

    config = ClientConfig.from_env(mode)
    if address is not None:
        config.address = address
    if api_key is not None:
        config.api_key = api_key
    config.timeout = timeout

    try:
        exit_code = asyncio.run(_run_chat(config, echo))
    except KeyboardInterrupt:
        click.echo("\nShutting down", err=True)
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
