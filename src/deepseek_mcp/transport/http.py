"""HTTP (request/response) binding.

Each ``POST /api/mcp`` body is one request envelope and the response body is
its response envelope. No state is kept between requests.

Encoding:
- Bodies are UTF-8 JSON
- Content-Type of responses is application/json
- Undecodable bodies are answered with 400 and no envelope
"""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import BaseRoute, Route

from ..protocol import ResponseEnvelope
from ..protocol.codec import ENCODING
from .base import ListeningBinding

logger = logging.getLogger(__name__)

MEDIA_TYPE = "application/json"


class HttpBinding(ListeningBinding):
    """HTTP binding. Serves ``POST /api/mcp``."""

    name = "http"

    def encode(self, envelope: ResponseEnvelope) -> bytes:
        return envelope.to_json().encode(ENCODING)

    def routes(self) -> list[BaseRoute]:
        return [Route("/api/mcp", self.handle_request, methods=["POST"])]

    async def handle_request(self, request: Request) -> Response:
        body = await request.body()
        response = await self.process(body)
        if response is None:
            return JSONResponse({"error": "Request body is not a JSON object"}, status_code=400)
        return Response(self.encode(response), media_type=MEDIA_TYPE)
