"""Pytest configuration and shared fixtures."""

import pytest

from deepseek_mcp.capabilities import build_registry
from deepseek_mcp.config import ServerConfig
from deepseek_mcp.protocol import RequestHandler
from deepseek_mcp.registry import CapabilityRegistry


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def registry() -> CapabilityRegistry:
    """Registry holding the built-in capabilities."""
    return build_registry()


@pytest.fixture
def handler(registry: CapabilityRegistry) -> RequestHandler:
    return RequestHandler(registry)


@pytest.fixture
def server_config() -> ServerConfig:
    return ServerConfig()
