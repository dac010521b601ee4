"""Unit tests for the RequestHandler dispatch core."""

from __future__ import annotations

import json

import pytest

from deepseek_mcp.errors import DecodeError
from deepseek_mcp.protocol import Method, RequestEnvelope, RequestHandler
from deepseek_mcp.registry import CapabilityDescriptor, CapabilityRegistry, NoArguments
from deepseek_mcp.types import CapabilityResult, Category


def request(method: str | Method, request_id: int | str = 1, **params) -> RequestEnvelope:
    method_str = method.value if isinstance(method, Method) else method
    return RequestEnvelope(id=request_id, method=method_str, params=params)


# =============================================================================
# Listing
# =============================================================================


class TestListing:
    @pytest.mark.anyio
    async def test_list_tools(self, handler: RequestHandler) -> None:
        response = await handler.handle(request(Method.LIST_TOOLS, 9))

        assert response.id == 9
        assert response.error is None
        names = [tool["name"] for tool in response.result["tools"]]
        assert names == ["file_read", "file_write", "web_search"]
        assert "inputSchema" in response.result["tools"][0]

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        ("method", "key", "identifier_key"),
        [
            (Method.LIST_RESOURCES, "resources", "uri"),
            (Method.LIST_PROMPTS, "prompts", "name"),
            (Method.LIST_SAMPLES, "samples", "uri"),
        ],
    )
    async def test_list_other_categories(
        self, handler: RequestHandler, method: Method, key: str, identifier_key: str
    ) -> None:
        response = await handler.handle(request(method))

        entries = response.result[key]
        assert len(entries) == 1
        assert identifier_key in entries[0]

    @pytest.mark.anyio
    async def test_list_empty_registry(self) -> None:
        response = await RequestHandler(CapabilityRegistry()).handle(request(Method.LIST_TOOLS))
        assert response.result == {"tools": []}


# =============================================================================
# Invocation
# =============================================================================


class TestInvocation:
    @pytest.mark.anyio
    async def test_call_tool(self, handler: RequestHandler) -> None:
        response = await handler.handle(
            request(Method.CALL_TOOL, 2, name="web_search", arguments={"query": "python"})
        )

        result = response.capability_result()
        assert result.is_error is False
        assert result.first_text.startswith('搜索 "python" 的结果:')

    @pytest.mark.anyio
    async def test_read_resource_by_uri(self, handler: RequestHandler) -> None:
        response = await handler.handle(
            request(Method.READ_RESOURCE, uri="resource://system/info")
        )
        assert response.capability_result().first_text.startswith("系统信息:")

    @pytest.mark.anyio
    async def test_get_sample_by_bare_path(self, handler: RequestHandler) -> None:
        response = await handler.handle(request(Method.GET_SAMPLE, uri="python/hello-world"))
        assert response.capability_result().first_text == 'print("Hello, World!")'

    @pytest.mark.anyio
    async def test_get_prompt_default_language(self, handler: RequestHandler) -> None:
        response = await handler.handle(
            request(Method.GET_PROMPT, name="code_review", arguments={"code": "x = 1"})
        )
        text = response.capability_result().first_text
        assert "```generic-text\nx = 1\n```" in text

    @pytest.mark.anyio
    async def test_handled_failure_is_a_result_not_an_error(
        self, handler: RequestHandler, tmp_path
    ) -> None:
        missing = tmp_path / "missing.txt"
        response = await handler.handle(
            request(Method.CALL_TOOL, 4, name="file_read", arguments={"path": str(missing)})
        )

        assert response.error is None
        result = response.capability_result()
        assert result.is_error is True
        assert result.first_text.startswith("读取文件失败:")


# =============================================================================
# Protocol errors
# =============================================================================


class TestProtocolErrors:
    @pytest.mark.anyio
    async def test_unknown_method(self, handler: RequestHandler) -> None:
        response = await handler.handle(request("drop-tables", 5))

        assert response.id == 5
        assert response.result is None
        assert response.error.code == "METHOD_NOT_FOUND"
        assert response.error.message == "Unknown method: drop-tables"

    @pytest.mark.anyio
    async def test_unknown_capability_keeps_id(self, handler: RequestHandler) -> None:
        response = await handler.handle(request(Method.CALL_TOOL, "abc", name="nope"))

        assert response.id == "abc"
        assert response.error.code == "CAPABILITY_NOT_FOUND"
        assert "nope" in response.error.message

    @pytest.mark.anyio
    async def test_missing_identifier(self, handler: RequestHandler) -> None:
        response = await handler.handle(request(Method.READ_RESOURCE, 6))

        assert response.error.code == "INVALID_PARAMS"
        assert "uri" in response.error.message

    @pytest.mark.anyio
    async def test_arguments_violating_contract(self, handler: RequestHandler) -> None:
        response = await handler.handle(
            request(Method.CALL_TOOL, 7, name="file_write", arguments={"path": "/tmp/x"})
        )

        assert response.error.code == "INVALID_PARAMS"
        assert "content" in response.error.message

    @pytest.mark.anyio
    async def test_crashing_handler_becomes_handler_error(self) -> None:
        async def crash(args: NoArguments) -> CapabilityResult:
            raise KeyError("gone")

        registry = CapabilityRegistry()
        registry.register(
            Category.TOOL,
            CapabilityDescriptor(
                category=Category.TOOL, name_or_uri="crash", description="", handler=crash
            ),
        )
        handler = RequestHandler(registry)

        response = await handler.handle(request(Method.CALL_TOOL, 8, name="crash"))

        assert response.id == 8
        assert response.error.code == "HANDLER_ERROR"

        # The handler keeps serving after a crash
        follow_up = await handler.handle(request(Method.LIST_TOOLS, 9))
        assert follow_up.result["tools"][0]["name"] == "crash"


# =============================================================================
# Raw input
# =============================================================================


class TestHandleRaw:
    @pytest.mark.anyio
    async def test_raw_round_trip(self, handler: RequestHandler) -> None:
        response = await handler.handle_raw(
            b'{"jsonrpc": "2.0", "id": 1, "method": "list-prompts"}'
        )
        data = json.loads(response.to_json())

        assert data["id"] == 1
        assert data["result"]["prompts"][0]["name"] == "code_review"

    @pytest.mark.anyio
    async def test_undecodable_raises_decode_error(self, handler: RequestHandler) -> None:
        with pytest.raises(DecodeError):
            await handler.handle_raw(b"{not json")

    @pytest.mark.anyio
    async def test_malformed_envelope_recovers_id(self, handler: RequestHandler) -> None:
        response = await handler.handle_raw('{"id": 12, "params": {}}')

        assert response.id == 12
        assert response.error.code == "INVALID_REQUEST"
        assert response.error.message.startswith("Malformed request envelope:")

    @pytest.mark.anyio
    async def test_malformed_envelope_without_id(self, handler: RequestHandler) -> None:
        response = await handler.handle_raw('{"method": "list-tools"}')

        assert response.id is None
        assert response.error.code == "INVALID_REQUEST"
