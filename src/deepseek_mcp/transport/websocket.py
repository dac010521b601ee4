"""WebSocket (persistent socket) binding.

Every accepted connection is an independent peer with its own receive
loop. A response is pushed back only on the connection that carried the
request. One message per frame; text and binary frames are both accepted.
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING

from starlette.routing import BaseRoute, WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect

from ..protocol import RequestHandler, ResponseEnvelope
from .base import ListeningBinding

if TYPE_CHECKING:
    from ..config import ServerConfig

logger = logging.getLogger(__name__)


class WebSocketBinding(ListeningBinding):
    """Socket binding. Serves WebSocket connections at ``/`` and ``/ws``."""

    name = "socket"

    def __init__(self, handler: RequestHandler, config: ServerConfig) -> None:
        super().__init__(handler, config)
        self._connection_ids = itertools.count(1)
        self._active: set[int] = set()

    @property
    def active_connections(self) -> int:
        return len(self._active)

    def encode(self, envelope: ResponseEnvelope) -> str:
        return envelope.to_json()

    def routes(self) -> list[BaseRoute]:
        return [
            WebSocketRoute("/", self.handle_connection),
            WebSocketRoute("/ws", self.handle_connection),
        ]

    async def handle_connection(self, websocket: WebSocket) -> None:
        """Receive loop for one connection.

        Requests on a connection are handled in arrival order. Failures on
        one connection never affect another.
        """
        connection_id = next(self._connection_ids)
        await websocket.accept()
        self._active.add(connection_id)
        logger.info(f"Socket connection {connection_id} opened ({len(self._active)} active)")

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break

                data = message.get("text")
                if data is None:
                    data = message.get("bytes")
                if data is None:
                    continue

                response = await self.process(data)
                if response is not None:
                    await websocket.send_text(self.encode(response))

        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.exception(f"Socket connection {connection_id} failed: {e}")
        finally:
            self._active.discard(connection_id)
            logger.info(f"Socket connection {connection_id} closed")
