"""Request Handler - transport-agnostic dispatch core.

Resolves a request envelope to a registered capability, invokes it and
wraps the outcome in a response envelope. All transports (stdio, WebSocket,
HTTP) delegate here, so behavior is identical regardless of how a request
arrived.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from ..errors import NotFoundError
from ..registry import CapabilityRegistry
from ..types import CapabilityResult, DispatchFailure
from .codec import decode_json_object, recover_id
from .envelopes import ErrorCode, Method, RequestEnvelope, ResponseEnvelope

logger = logging.getLogger(__name__)


class RequestHandler:
    """Handles request envelopes and returns response envelopes.

    Usage:
        handler = RequestHandler(registry)
        response = await handler.handle(envelope)

    The returned envelope always carries the request's ``id`` and exactly
    one of ``result`` / ``error``. ``handle`` never raises for a decoded
    envelope; a misbehaving capability becomes a ``HANDLER_ERROR`` response.
    """

    def __init__(self, registry: CapabilityRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    async def handle_raw(self, data: bytes | str) -> ResponseEnvelope:
        """Decode raw wire data and handle it.

        Raises:
            DecodeError: If the data is not a JSON object. Callers log and
                drop the message.
        """
        obj = decode_json_object(data)
        try:
            envelope = RequestEnvelope.model_validate(obj)
        except ValidationError as e:
            request_id = recover_id(obj)
            logger.info(
                f"Rejecting malformed envelope (id={request_id!r}): {e.error_count()} errors"
            )
            return ResponseEnvelope.failure(
                request_id,
                ErrorCode.INVALID_REQUEST,
                f"Malformed request envelope: {_first_error(e)}",
            )
        return await self.handle(envelope)

    async def handle(self, envelope: RequestEnvelope) -> ResponseEnvelope:
        """Dispatch a request envelope."""
        logger.debug(f"Handling request: {envelope.method} (id={envelope.id!r})")

        try:
            method = Method(envelope.method)
        except ValueError:
            return ResponseEnvelope.failure(
                envelope.id,
                ErrorCode.METHOD_NOT_FOUND,
                f"Unknown method: {envelope.method}",
            )

        category = method.category
        if method.is_list:
            return ResponseEnvelope.success(
                envelope.id, {category.plural: self._registry.list(category)}
            )

        identifier = envelope.params.name_or_uri
        if not identifier:
            return ResponseEnvelope.failure(
                envelope.id,
                ErrorCode.INVALID_PARAMS,
                f"Missing '{category.identifier_key}' for {method.value}",
            )

        try:
            descriptor = self._registry.lookup(category, identifier)
        except NotFoundError as e:
            return ResponseEnvelope.failure(envelope.id, ErrorCode.CAPABILITY_NOT_FOUND, str(e))

        outcome = await descriptor.invoke(envelope.params.arguments or {})

        match outcome:
            case CapabilityResult():
                return ResponseEnvelope.success(envelope.id, outcome)
            case DispatchFailure(message=message, code=code):
                logger.warning(f"{method.value} '{identifier}' failed: {message}")
                return ResponseEnvelope.failure(envelope.id, code, message)


def _first_error(error: ValidationError) -> str:
    item = error.errors()[0]
    location = ".".join(str(p) for p in item["loc"]) or "envelope"
    return f"{location}: {item['msg']}"
