"""Transport-agnostic protocol layer.

Defines the request/response envelopes shared by every transport and the
dispatch core that routes requests to registered capabilities.

Key concepts:
- RequestEnvelope: caller → server, carries a caller-assigned ``id``
- ResponseEnvelope: server → caller, echoes the ``id`` and carries exactly
  one of ``result`` / ``error``
- RequestHandler: maps an envelope to a capability and back
"""

from .codec import decode_json_object, decode_request, decode_response, encode_envelope
from .envelopes import (
    PROTOCOL_VERSION,
    ErrorCode,
    ErrorInfo,
    Method,
    RequestEnvelope,
    RequestParams,
    ResponseEnvelope,
)
from .handler import RequestHandler

__all__ = [
    "PROTOCOL_VERSION",
    "ErrorCode",
    "ErrorInfo",
    "Method",
    "RequestEnvelope",
    "RequestParams",
    "ResponseEnvelope",
    "RequestHandler",
    "decode_json_object",
    "decode_request",
    "decode_response",
    "encode_envelope",
]
