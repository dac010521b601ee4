"""Wire codec shared by all transports.

All JSON is UTF-8 (no BOM on output, BOM tolerated on input). Decoding
happens in two stages so transports can tell the failure kinds apart:

1. bytes → JSON object. Failure raises ``DecodeError`` (transport failure:
   the message is dropped).
2. JSON object → envelope. Failure raises ``pydantic.ValidationError``
   (protocol error: answered with an ``INVALID_REQUEST`` envelope).
"""

from __future__ import annotations

import json
from typing import Any

from ..errors import DecodeError
from .envelopes import RequestEnvelope, ResponseEnvelope

ENCODING = "utf-8"


def decode_json_object(data: bytes | str) -> dict[str, Any]:
    """Decode raw bytes or text into a JSON object.

    Raises:
        DecodeError: If the data is not UTF-8 JSON or not a JSON object
    """
    if isinstance(data, bytes | bytearray):
        try:
            data = bytes(data).decode(ENCODING)
        except UnicodeDecodeError as e:
            raise DecodeError(f"invalid UTF-8: {e}") from e

    text = data.strip()
    if text.startswith("\ufeff"):
        text = text[1:]

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise DecodeError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


def recover_id(obj: dict[str, Any]) -> int | str | None:
    """Best-effort request id from an object that failed envelope validation."""
    value = obj.get("id")
    if isinstance(value, int | str) and not isinstance(value, bool):
        return value
    return None


def decode_request(data: bytes | str) -> RequestEnvelope:
    """Decode a request envelope."""
    return RequestEnvelope.model_validate(decode_json_object(data))


def decode_response(data: bytes | str) -> ResponseEnvelope:
    """Decode a response envelope."""
    return ResponseEnvelope.model_validate(decode_json_object(data))


def encode_envelope(envelope: RequestEnvelope | ResponseEnvelope) -> str:
    """Encode an envelope as a single line of JSON (no trailing newline)."""
    return envelope.to_json()
