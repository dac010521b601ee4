"""Integration tests for the pipe (stdio) binding.

Tests the binding with a real RequestHandler, verifying:
- JSON line parsing from stdin
- Response serialization to stdout
- Ordering of responses
- UTF-8 encoding, BOM stripping and CRLF input
- Undecodable lines are skipped without closing the stream
"""

import io
import json

import pytest

from deepseek_mcp.config import ServerConfig
from deepseek_mcp.protocol import RequestHandler
from deepseek_mcp.transport import StdioBinding

# =============================================================================
# Helpers
# =============================================================================


def make_binary_stream(lines: list[str], newline: str = "\n") -> io.BytesIO:
    """Create a binary stream from lines (simulating stdin)."""
    content = newline.join(lines) + newline
    return io.BytesIO(content.encode("utf-8"))


def read_responses(stream: io.BytesIO) -> list[dict]:
    """Read JSON responses from a binary stream (simulating stdout)."""
    stream.seek(0)
    return [json.loads(line.decode("utf-8")) for line in stream if line.strip()]


async def run_binding(handler: RequestHandler, stdin: io.BytesIO) -> io.BytesIO:
    stdout = io.BytesIO()
    binding = StdioBinding(handler, ServerConfig(), stdin=stdin, stdout=stdout)
    await binding.serve()
    return stdout


# =============================================================================
# Tests: Basic requests
# =============================================================================


class TestBasicRequests:
    @pytest.mark.anyio
    async def test_list_tools(self, handler: RequestHandler):
        stdin = make_binary_stream(['{"jsonrpc": "2.0", "id": 1, "method": "list-tools"}'])

        responses = read_responses(await run_binding(handler, stdin))

        assert len(responses) == 1
        assert responses[0]["id"] == 1
        assert responses[0]["jsonrpc"] == "2.0"
        assert [t["name"] for t in responses[0]["result"]["tools"]] == [
            "file_read",
            "file_write",
            "web_search",
        ]

    @pytest.mark.anyio
    async def test_responses_in_request_order(self, handler: RequestHandler, tmp_path):
        path = str(tmp_path / "f.txt")
        stdin = make_binary_stream(
            [
                json.dumps(
                    {
                        "id": "w",
                        "method": "call-tool",
                        "params": {
                            "name": "file_write",
                            "arguments": {"path": path, "content": "x"},
                        },
                    }
                ),
                json.dumps(
                    {
                        "id": "r",
                        "method": "call-tool",
                        "params": {"name": "file_read", "arguments": {"path": path}},
                    }
                ),
                '{"id": 3, "method": "list-samples"}',
            ]
        )

        responses = read_responses(await run_binding(handler, stdin))

        assert [r["id"] for r in responses] == ["w", "r", 3]
        assert responses[1]["result"]["content"][0]["text"] == "x"

    @pytest.mark.anyio
    async def test_protocol_error_response(self, handler: RequestHandler):
        stdin = make_binary_stream(['{"id": 5, "method": "get-prompt", "params": {"name": "x"}}'])

        responses = read_responses(await run_binding(handler, stdin))

        assert responses[0] == {
            "jsonrpc": "2.0",
            "id": 5,
            "error": {"code": "CAPABILITY_NOT_FOUND", "message": "prompt not found: x"},
        }


# =============================================================================
# Tests: Robustness
# =============================================================================


class TestRobustness:
    @pytest.mark.anyio
    async def test_invalid_json_skipped(self, handler: RequestHandler):
        stdin = make_binary_stream(
            [
                "this is not json",
                "[1, 2, 3]",
                '{"id": 2, "method": "list-prompts"}',
            ]
        )

        responses = read_responses(await run_binding(handler, stdin))

        assert [r["id"] for r in responses] == [2]

    @pytest.mark.anyio
    async def test_invalid_utf8_line_skipped(self, handler: RequestHandler):
        stdin = io.BytesIO(
            b'{"id": 1, "method": "list-tools", "note": "\xff\xfe"}\n'
            b'{"id": 2, "method": "list-tools"}\n'
        )

        responses = read_responses(await run_binding(handler, stdin))

        assert [r["id"] for r in responses] == [2]

    @pytest.mark.anyio
    async def test_malformed_envelope_answered(self, handler: RequestHandler):
        stdin = make_binary_stream(['{"id": 4, "params": {}}'])

        responses = read_responses(await run_binding(handler, stdin))

        assert responses[0]["id"] == 4
        assert responses[0]["error"]["code"] == "INVALID_REQUEST"

    @pytest.mark.anyio
    async def test_blank_lines_ignored(self, handler: RequestHandler):
        stdin = make_binary_stream(["", "   ", '{"id": 1, "method": "list-tools"}', ""])

        responses = read_responses(await run_binding(handler, stdin))

        assert len(responses) == 1

    @pytest.mark.anyio
    async def test_empty_input(self, handler: RequestHandler):
        stdout = await run_binding(handler, io.BytesIO(b""))
        assert stdout.getvalue() == b""


# =============================================================================
# Tests: Encoding
# =============================================================================


class TestEncoding:
    @pytest.mark.anyio
    async def test_crlf_input(self, handler: RequestHandler):
        stdin = make_binary_stream(
            ['{"id": 1, "method": "list-tools"}', '{"id": 2, "method": "list-tools"}'],
            newline="\r\n",
        )

        responses = read_responses(await run_binding(handler, stdin))

        assert [r["id"] for r in responses] == [1, 2]

    @pytest.mark.anyio
    async def test_bom_stripped(self, handler: RequestHandler):
        stdin = io.BytesIO(b"\xef\xbb\xbf" + b'{"id": 1, "method": "list-tools"}\n')

        responses = read_responses(await run_binding(handler, stdin))

        assert responses[0]["id"] == 1

    @pytest.mark.anyio
    async def test_output_is_lf_terminated_utf8(self, handler: RequestHandler):
        stdin = make_binary_stream(['{"id": 1, "method": "list-tools"}'])

        raw = (await run_binding(handler, stdin)).getvalue()

        assert raw.endswith(b"\n")
        assert b"\r\n" not in raw
        assert "读取文件内容".encode() in raw
