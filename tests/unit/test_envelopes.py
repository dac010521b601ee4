"""Unit tests for request/response envelopes and the wire codec."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from deepseek_mcp.errors import DecodeError
from deepseek_mcp.protocol import (
    ErrorCode,
    Method,
    RequestEnvelope,
    ResponseEnvelope,
    decode_json_object,
    decode_request,
    decode_response,
    encode_envelope,
)
from deepseek_mcp.protocol.codec import recover_id
from deepseek_mcp.types import CapabilityResult, Category

# =============================================================================
# Method
# =============================================================================


class TestMethod:
    def test_eight_methods(self) -> None:
        assert {m.value for m in Method} == {
            "list-tools",
            "call-tool",
            "list-resources",
            "read-resource",
            "list-prompts",
            "get-prompt",
            "list-samples",
            "get-sample",
        }

    def test_category_and_kind(self) -> None:
        assert Method.READ_RESOURCE.category is Category.RESOURCE
        assert Method.LIST_SAMPLES.is_list
        assert not Method.GET_PROMPT.is_list
        assert Method.invoke_for(Category.TOOL) is Method.CALL_TOOL


# =============================================================================
# RequestEnvelope
# =============================================================================


class TestRequestEnvelope:
    def test_create_uses_name_for_tools(self) -> None:
        envelope = RequestEnvelope.create(
            Method.CALL_TOOL, 1, name_or_uri="file_read", arguments={"path": "/a"}
        )
        data = json.loads(envelope.to_json())

        assert data == {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "call-tool",
            "params": {"name": "file_read", "arguments": {"path": "/a"}},
        }

    def test_create_uses_uri_for_resources(self) -> None:
        envelope = RequestEnvelope.create(Method.READ_RESOURCE, "r1", "resource://system/info")
        data = json.loads(envelope.to_json())

        assert data["params"] == {"uri": "resource://system/info"}
        assert data["id"] == "r1"

    def test_decode_without_params(self) -> None:
        envelope = decode_request('{"jsonrpc": "2.0", "id": 3, "method": "list-tools"}')

        assert envelope.id == 3
        assert envelope.params.name_or_uri is None
        assert envelope.params.arguments is None

    def test_unknown_method_still_decodes(self) -> None:
        envelope = decode_request('{"id": 1, "method": "delete-everything"}')
        assert envelope.method == "delete-everything"

    def test_missing_id_fails_validation(self) -> None:
        with pytest.raises(ValidationError):
            decode_request('{"method": "list-tools"}')

    def test_string_and_integer_ids_preserved(self) -> None:
        assert decode_request('{"id": "abc", "method": "list-tools"}').id == "abc"
        assert decode_request('{"id": 42, "method": "list-tools"}').id == 42


# =============================================================================
# ResponseEnvelope
# =============================================================================


class TestResponseEnvelope:
    def test_success_from_capability_result(self) -> None:
        envelope = ResponseEnvelope.success(7, CapabilityResult.failure("nope"))
        data = json.loads(envelope.to_json())

        assert data == {
            "jsonrpc": "2.0",
            "id": 7,
            "result": {"content": [{"type": "text", "text": "nope"}], "isError": True},
        }

    def test_failure_has_no_result_key(self) -> None:
        envelope = ResponseEnvelope.failure(7, ErrorCode.METHOD_NOT_FOUND, "Unknown method: x")
        data = json.loads(envelope.to_json())

        assert "result" not in data
        assert data["error"] == {"code": "METHOD_NOT_FOUND", "message": "Unknown method: x"}
        assert envelope.is_error

    def test_null_id_is_serialized(self) -> None:
        envelope = ResponseEnvelope.failure(None, ErrorCode.INVALID_REQUEST, "bad")
        assert json.loads(envelope.to_json())["id"] is None

    def test_both_result_and_error_rejected(self) -> None:
        with pytest.raises(ValidationError, match="exactly one"):
            decode_response(
                '{"id": 1, "result": {}, "error": {"code": "HANDLER_ERROR", "message": "x"}}'
            )

    def test_neither_result_nor_error_rejected(self) -> None:
        with pytest.raises(ValidationError, match="exactly one"):
            ResponseEnvelope(id=1)

    def test_capability_result_round_trip(self) -> None:
        original = ResponseEnvelope.success(1, CapabilityResult.text("hello"))
        decoded = decode_response(encode_envelope(original))

        result = decoded.capability_result()
        assert result.first_text == "hello"
        assert result.is_error is False

    def test_capability_result_of_listing_raises(self) -> None:
        envelope = ResponseEnvelope.success(1, {"tools": []})
        with pytest.raises(ValueError):
            envelope.capability_result()

    def test_capability_result_of_error_raises(self) -> None:
        envelope = ResponseEnvelope.failure(1, ErrorCode.HANDLER_ERROR, "boom")
        with pytest.raises(ValueError, match="no result"):
            envelope.capability_result()


# =============================================================================
# Codec
# =============================================================================


class TestDecodeJsonObject:
    def test_bytes_and_text(self) -> None:
        assert decode_json_object(b'{"a": 1}') == {"a": 1}
        assert decode_json_object('{"a": 1}') == {"a": 1}

    def test_bom_and_whitespace_tolerated(self) -> None:
        raw = "\ufeff" + '{"a": "中文"}\r\n'
        assert decode_json_object(raw.encode("utf-8")) == {"a": "中文"}

    @pytest.mark.parametrize("raw", [b"not json", b"[1, 2]", b'"text"', b"\xff\xfe{}", b""])
    def test_rejects_non_objects(self, raw: bytes) -> None:
        with pytest.raises(DecodeError):
            decode_json_object(raw)

    def test_encoded_output_has_no_newline(self) -> None:
        envelope = ResponseEnvelope.success(1, CapabilityResult.text("a\nb"))
        assert "\n" not in encode_envelope(envelope)


class TestRecoverId:
    def test_recovers_valid_ids(self) -> None:
        assert recover_id({"id": 5}) == 5
        assert recover_id({"id": "x"}) == "x"

    def test_ignores_invalid_ids(self) -> None:
        assert recover_id({}) is None
        assert recover_id({"id": True}) is None
        assert recover_id({"id": [1]}) is None
