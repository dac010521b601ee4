"""Transport bindings.

Exactly one binding is active per server process, selected at startup:
- pipe   - newline-delimited JSON over stdin/stdout
- socket - WebSocket, one receive loop per connection
- http   - one envelope per POST /api/mcp request
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import ListeningBinding, TransportBinding
from .http import HttpBinding
from .stdio import StdioBinding
from .websocket import WebSocketBinding

if TYPE_CHECKING:
    from ..config import ServerConfig
    from ..protocol import RequestHandler

BINDINGS: dict[str, type[TransportBinding]] = {
    StdioBinding.name: StdioBinding,
    WebSocketBinding.name: WebSocketBinding,
    HttpBinding.name: HttpBinding,
}


def create_binding(handler: RequestHandler, config: ServerConfig) -> TransportBinding:
    """Instantiate the binding selected by ``config.transport``.

    Raises:
        ValueError: If the selector is not one of pipe, socket, http
    """
    try:
        binding_cls = BINDINGS[config.transport]
    except KeyError:
        raise ValueError(
            f"Unknown transport '{config.transport}' (expected one of: {', '.join(BINDINGS)})"
        ) from None
    return binding_cls(handler, config)


__all__ = [
    "BINDINGS",
    "HttpBinding",
    "ListeningBinding",
    "StdioBinding",
    "TransportBinding",
    "WebSocketBinding",
    "create_binding",
]
