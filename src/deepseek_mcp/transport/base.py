"""Transport binding base classes.

A binding maps bytes on one connection technology to request envelopes and
back. Bindings own their receive loops and connection lifecycle; all
routing is delegated to the RequestHandler.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

import uvicorn
from starlette.routing import BaseRoute

from ..errors import DecodeError
from ..protocol import RequestEnvelope, RequestHandler, ResponseEnvelope, decode_request

if TYPE_CHECKING:
    from ..config import ServerConfig

logger = logging.getLogger(__name__)


class TransportBinding(ABC):
    """Adapter between one transport technology and the RequestHandler."""

    name: ClassVar[str]

    def __init__(self, handler: RequestHandler, config: ServerConfig) -> None:
        self._handler = handler
        self._config = config

    @property
    def handler(self) -> RequestHandler:
        return self._handler

    @property
    def config(self) -> ServerConfig:
        return self._config

    def decode(self, data: bytes | str) -> RequestEnvelope:
        """Decode one framed message into a request envelope."""
        return decode_request(data)

    @abstractmethod
    def encode(self, envelope: ResponseEnvelope) -> bytes | str:
        """Encode a response envelope into one framed message."""
        ...

    async def process(self, data: bytes | str) -> ResponseEnvelope | None:
        """Handle one inbound message.

        Returns None when the message could not be decoded at all; the
        binding drops it and keeps the connection open.
        """
        try:
            return await self._handler.handle_raw(data)
        except DecodeError as e:
            logger.warning(f"{self.name}: dropping undecodable message: {e}")
            return None

    @abstractmethod
    async def serve(self) -> None:
        """Run until the transport closes or the process is interrupted."""
        ...


class ListeningBinding(TransportBinding):
    """Binding served as an ASGI app on a TCP port."""

    @abstractmethod
    def routes(self) -> list[BaseRoute]:
        """Starlette routes exposing this binding."""
        ...

    async def serve(self) -> None:
        from ..app import create_app

        app = create_app(self)
        config = uvicorn.Config(
            app,
            host=self._config.host,
            port=self._config.port,
            log_level=self._config.effective_log_level().lower(),
        )
        logger.info(
            f"{self._config.name} {self._config.version} listening on "
            f"{self._config.host}:{self._config.port} ({self.name})"
        )
        await uvicorn.Server(config).serve()
