"""Server application.

Creates the Starlette ASGI application for a listening binding.

Route organization:
- /health   - Health check (all listening bindings)
- /, /ws    - WebSocket endpoint (socket binding)
- /api/mcp  - Envelope endpoint (http binding)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import BaseRoute, Route

if TYPE_CHECKING:
    from .transport import ListeningBinding


def create_app(binding: ListeningBinding) -> Starlette:
    """Create the application serving one binding."""
    config = binding.config

    async def health_check(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "name": config.name,
                "version": config.version,
                "transport": binding.name,
            }
        )

    routes: list[BaseRoute] = [Route("/health", health_check, methods=["GET"])]
    routes.extend(binding.routes())

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        ),
    ]

    return Starlette(routes=routes, middleware=middleware)
