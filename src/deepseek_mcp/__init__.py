"""DeepSeek MCP server.

Capability-dispatch server exposing tools, resources, prompt templates and
samples over one of three transports (stdio pipe, WebSocket, HTTP), plus the
client-side correlation layer used by the chat front end.
"""

SERVER_NAME = "deepseek-mcp-server"
__version__ = "1.0.0"

__all__ = ["SERVER_NAME", "__version__"]
