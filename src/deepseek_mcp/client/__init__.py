"""Client side: intent parsing, request correlation and transports."""

from .chat import ChatClient
from .correlator import ClientCorrelator, PendingCall
from .intents import Intent, IntentParser, ReadFile, Search, WriteFile
from .session import ChatMessage, ChatSession, Role
from .transport import (
    ClientTransport,
    HttpClientTransport,
    LoopbackClientTransport,
    MockClientTransport,
    PipeClientTransport,
    SocketClientTransport,
    TransportState,
    create_client_transport,
)

__all__ = [
    "ChatClient",
    "ChatMessage",
    "ChatSession",
    "ClientCorrelator",
    "ClientTransport",
    "HttpClientTransport",
    "Intent",
    "IntentParser",
    "LoopbackClientTransport",
    "MockClientTransport",
    "PendingCall",
    "PipeClientTransport",
    "ReadFile",
    "Role",
    "Search",
    "SocketClientTransport",
    "TransportState",
    "WriteFile",
    "create_client_transport",
]
