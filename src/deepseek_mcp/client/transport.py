"""Client-side transports.

Every transport exposes the same ``send(envelope)`` call. Responses are
never returned from ``send``; they are pushed to the bound ``on_message``
callback as raw wire data, which lets the ClientCorrelator treat every
transport alike:

- pipe / socket: a background read loop pushes responses as they arrive
- http: the reply to each POST is pushed before ``send`` returns
- loopback / mock: in-process, for tests and embedding

Architecture:
- ClientTransport is the base class holding state and callbacks
- Subclasses implement the wire format and connection management
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from enum import Enum
from typing import Any, ClassVar

import httpx
import websockets

from ..config import ClientConfig
from ..protocol import RequestEnvelope, RequestHandler
from ..protocol.codec import ENCODING

logger = logging.getLogger(__name__)

MessageCallback = Callable[[bytes | str], Any]
CloseCallback = Callable[[], Any]


class TransportState(str, Enum):
    """Connection state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


class ClientTransport(ABC):
    """Base class for client transports.

    Provides:
    - State management
    - Callback delivery of inbound messages and connection loss
    - Background reader task management
    """

    # False for transports whose replies arrive inline with send()
    has_inbound_stream: ClassVar[bool] = True

    def __init__(self, config: ClientConfig) -> None:
        self.config = config
        self._state = TransportState.DISCONNECTED
        self._on_message: MessageCallback | None = None
        self._on_close: CloseCallback | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == TransportState.CONNECTED

    def bind(self, on_message: MessageCallback, on_close: CloseCallback | None = None) -> None:
        """Register the receivers for inbound messages and connection loss."""
        self._on_message = on_message
        self._on_close = on_close

    async def connect(self) -> None:
        """Establish the connection.

        Raises:
            ConnectionError: If the connection cannot be established
        """
        async with self._lock:
            if self._state == TransportState.CONNECTED:
                return

            self._state = TransportState.CONNECTING
            try:
                await self._do_connect()
            except Exception as e:
                self._state = TransportState.DISCONNECTED
                raise ConnectionError(f"Failed to connect: {e}") from e

            self._state = TransportState.CONNECTED
            if self.has_inbound_stream:
                self._reader_task = asyncio.create_task(self._read_loop())
            logger.info(f"{self.__class__.__name__} connected")

    async def disconnect(self) -> None:
        """Close the connection. Pending calls are failed via ``on_close``."""
        async with self._lock:
            if self._state in (TransportState.DISCONNECTED, TransportState.CLOSED):
                return

            self._state = TransportState.CLOSED

            if self._reader_task:
                self._reader_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._reader_task
                self._reader_task = None

            await self._do_disconnect()
            self._state = TransportState.DISCONNECTED
            self._notify_closed()
            logger.info(f"{self.__class__.__name__} disconnected")

    async def send(self, envelope: RequestEnvelope) -> None:
        """Send a request envelope.

        Raises:
            ConnectionError: If not connected
        """
        if not self.is_connected:
            raise ConnectionError("Not connected to MCP server")
        await self._do_send(envelope)

    def _deliver(self, data: bytes | str) -> None:
        if self._on_message is None:
            logger.warning("Dropping inbound message: no receiver bound")
            return
        self._on_message(data)

    def _notify_closed(self) -> None:
        if self._on_close is not None:
            self._on_close()

    async def _read_loop(self) -> None:
        """Background task pushing inbound messages to the receiver."""
        try:
            async for data in self._receive_messages():
                self._deliver(data)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Read loop error: {e}")

        # Remote side closed the connection
        if self._state == TransportState.CONNECTED:
            self._state = TransportState.DISCONNECTED
            logger.info(f"{self.__class__.__name__} connection lost")
            self._notify_closed()

    @abstractmethod
    async def _do_connect(self) -> None: ...

    @abstractmethod
    async def _do_disconnect(self) -> None: ...

    @abstractmethod
    async def _do_send(self, envelope: RequestEnvelope) -> None: ...

    @abstractmethod
    def _receive_messages(self) -> AsyncIterator[bytes | str]:
        """Inbound raw messages. Must be an async generator."""
        ...

    async def __aenter__(self) -> ClientTransport:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()


class PipeClientTransport(ClientTransport):
    """Transport over a server subprocess's stdin/stdout.

    Launches ``deepseek-mcp-server pipe`` and exchanges newline-delimited
    JSON with it. The subprocess's stderr is forwarded to debug logging.
    """

    def __init__(self, config: ClientConfig | None = None) -> None:
        super().__init__(config or ClientConfig(mode="pipe"))
        self._process: asyncio.subprocess.Process | None = None
        self._stderr_task: asyncio.Task[None] | None = None

    async def _do_connect(self) -> None:
        cmd = self.config.command
        self._process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env={**os.environ},
        )
        self._stderr_task = asyncio.create_task(self._read_stderr())
        logger.info(f"Launched server: {' '.join(cmd)} (pid={self._process.pid})")

    async def _do_disconnect(self) -> None:
        if self._stderr_task:
            self._stderr_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._stderr_task
            self._stderr_task = None

        if self._process:
            if self._process.stdin:
                self._process.stdin.close()
            try:
                await asyncio.wait_for(self._process.wait(), timeout=5.0)
            except TimeoutError:
                self._process.terminate()
                await self._process.wait()
            logger.info(f"Server process exited (pid={self._process.pid})")
            self._process = None

    async def _do_send(self, envelope: RequestEnvelope) -> None:
        if not self._process or not self._process.stdin:
            raise ConnectionError("Server process not running")

        line = envelope.to_json() + "\n"
        self._process.stdin.write(line.encode(ENCODING))
        await self._process.stdin.drain()

    async def _receive_messages(self) -> AsyncIterator[bytes | str]:
        if not self._process or not self._process.stdout:
            raise ConnectionError("Server process not running")

        while True:
            line = await self._process.stdout.readline()
            if not line:
                break  # EOF - process exited
            if line.strip():
                yield line

    async def _read_stderr(self) -> None:
        if not self._process or not self._process.stderr:
            return
        while True:
            line = await self._process.stderr.readline()
            if not line:
                break
            logger.debug(f"[server stderr] {line.decode(ENCODING, errors='replace').rstrip()}")


class SocketClientTransport(ClientTransport):
    """Transport over a persistent WebSocket connection."""

    def __init__(self, config: ClientConfig | None = None) -> None:
        super().__init__(config or ClientConfig(mode="socket"))
        self._ws: Any = None  # websockets client connection

    async def _do_connect(self) -> None:
        self._ws = await websockets.connect(
            self.config.resolved_address(),
            ping_interval=30,
            ping_timeout=10,
        )

    async def _do_disconnect(self) -> None:
        if self._ws:
            await self._ws.close()
            self._ws = None

    async def _do_send(self, envelope: RequestEnvelope) -> None:
        if not self._ws:
            raise ConnectionError("WebSocket not connected")
        await self._ws.send(envelope.to_json())

    async def _receive_messages(self) -> AsyncIterator[bytes | str]:
        if not self._ws:
            raise ConnectionError("WebSocket not connected")
        try:
            async for data in self._ws:
                yield data
        except websockets.ConnectionClosed as e:
            logger.info(f"WebSocket closed: {e}")


class HttpClientTransport(ClientTransport):
    """Transport over HTTP request/response.

    Each envelope is POSTed to ``/api/mcp`` and the reply body is pushed to
    the receiver before ``send`` returns, so matching degenerates to a
    direct call/return pairing.
    """

    ENDPOINT = "/api/mcp"
    has_inbound_stream = False

    def __init__(
        self,
        config: ClientConfig | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config or ClientConfig(mode="http"))
        self._http_transport = http_transport
        self._http_client: httpx.AsyncClient | None = None

    async def _do_connect(self) -> None:
        client = httpx.AsyncClient(
            base_url=self.config.resolved_address(),
            timeout=self.config.timeout,
            transport=self._http_transport,
        )
        try:
            response = await client.get("/health")
            response.raise_for_status()
        except Exception as e:
            await client.aclose()
            raise ConnectionError(f"Server not reachable: {e}") from e
        self._http_client = client

    async def _do_disconnect(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _do_send(self, envelope: RequestEnvelope) -> None:
        if not self._http_client:
            raise ConnectionError("HTTP client not connected")

        response = await self._http_client.post(
            self.ENDPOINT,
            content=envelope.to_json().encode(ENCODING),
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
        self._deliver(response.content)

    async def _receive_messages(self) -> AsyncIterator[bytes | str]:
        # Replies arrive inline with each POST, there is no inbound stream
        return
        yield


class LoopbackClientTransport(ClientTransport):
    """In-process transport delivering to a RequestHandler.

    Responses are scheduled on the event loop rather than returned from
    ``send``, mimicking out-of-band delivery.
    """

    def __init__(self, handler: RequestHandler) -> None:
        super().__init__(ClientConfig(mode="loopback"))
        self._handler = handler
        self._inbox: asyncio.Queue[str] = asyncio.Queue()

    async def _do_connect(self) -> None:
        pass

    async def _do_disconnect(self) -> None:
        pass

    async def _do_send(self, envelope: RequestEnvelope) -> None:
        response = await self._handler.handle_raw(envelope.to_json())
        await self._inbox.put(response.to_json())

    async def _receive_messages(self) -> AsyncIterator[bytes | str]:
        while True:
            yield await self._inbox.get()


class MockClientTransport(ClientTransport):
    """Mock transport for testing.

    Records sent envelopes; tests push inbound messages with ``push()``.
    No actual I/O - everything is in-memory.
    """

    def __init__(self) -> None:
        super().__init__(ClientConfig(mode="mock"))
        self._sent: list[RequestEnvelope] = []

    @property
    def sent(self) -> list[RequestEnvelope]:
        return self._sent.copy()

    def push(self, data: bytes | str) -> None:
        """Deliver an inbound message as if it came from the server."""
        self._deliver(data)

    async def drop(self) -> None:
        """Simulate the server closing the connection."""
        if self._state == TransportState.CONNECTED:
            self._state = TransportState.DISCONNECTED
            if self._reader_task:
                self._reader_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._reader_task
                self._reader_task = None
            self._notify_closed()

    async def _do_connect(self) -> None:
        pass

    async def _do_disconnect(self) -> None:
        pass

    async def _do_send(self, envelope: RequestEnvelope) -> None:
        self._sent.append(envelope)

    async def _receive_messages(self) -> AsyncIterator[bytes | str]:
        await asyncio.Event().wait()
        return
        yield


def create_client_transport(config: ClientConfig) -> ClientTransport:
    """Create the transport for ``config.mode``.

    Raises:
        ValueError: If the mode is not one of pipe, socket, http
    """
    match config.mode:
        case "pipe":
            return PipeClientTransport(config)
        case "socket":
            return SocketClientTransport(config)
        case "http":
            return HttpClientTransport(config)
        case _:
            raise ValueError(f"Unknown client transport: {config.mode}")
