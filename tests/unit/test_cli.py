"""Unit tests for the command line entry points."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from deepseek_mcp.cli import main
from deepseek_mcp.config import ServerConfig


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep the CLI from reconfiguring the root logger during tests."""
    with patch("deepseek_mcp.cli._configure_logging") as configure:
        yield configure


@pytest.fixture
def fake_binding():
    """Replace binding creation so no stream or port is ever opened."""
    binding = MagicMock()
    binding.serve = AsyncMock()
    with patch("deepseek_mcp.cli.create_binding", return_value=binding) as create:
        yield create


def started_config(create: MagicMock) -> ServerConfig:
    return create.call_args.args[1]


class TestServerSelector:
    def test_default_is_pipe(self, fake_binding: MagicMock) -> None:
        result = CliRunner().invoke(main, [])

        assert result.exit_code == 0, result.output
        assert started_config(fake_binding).transport == "pipe"
        fake_binding.return_value.serve.assert_awaited_once()

    @pytest.mark.parametrize(("selector", "port"), [("socket", 3001), ("http", 3000)])
    def test_listening_selectors(
        self, fake_binding: MagicMock, selector: str, port: int
    ) -> None:
        result = CliRunner().invoke(main, [selector])

        assert result.exit_code == 0, result.output
        config = started_config(fake_binding)
        assert config.transport == selector
        assert config.port == port

    def test_unknown_selector_prints_usage(self, fake_binding: MagicMock) -> None:
        result = CliRunner().invoke(main, ["ftp"])

        assert result.exit_code == 2
        assert "Usage" in result.output
        fake_binding.assert_not_called()

    def test_port_override(self, fake_binding: MagicMock) -> None:
        result = CliRunner().invoke(main, ["socket", "--port", "9001", "--host", "0.0.0.0"])

        assert result.exit_code == 0, result.output
        config = started_config(fake_binding)
        assert config.port == 9001
        assert config.host == "0.0.0.0"

    def test_port_with_pipe_rejected(self, fake_binding: MagicMock) -> None:
        result = CliRunner().invoke(main, ["pipe", "--port", "9001"])

        assert result.exit_code == 2
        assert "require socket or http" in result.output
        fake_binding.assert_not_called()

    def test_bad_environment_port(self, fake_binding: MagicMock) -> None:
        result = CliRunner().invoke(main, ["http"], env={"DEEPSEEK_MCP_HTTP_PORT": "x"})

        assert result.exit_code == 1
        assert "must be an integer" in result.output
        fake_binding.assert_not_called()

    def test_log_level_option(
        self, fake_binding: MagicMock, no_logging_setup: MagicMock
    ) -> None:
        result = CliRunner().invoke(main, ["http", "--log-level", "debug"])

        assert result.exit_code == 0, result.output
        no_logging_setup.assert_called_once_with("DEBUG")
