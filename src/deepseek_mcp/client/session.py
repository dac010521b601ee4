"""Chat session: user input in, caller-visible messages out.

Ties the IntentParser, ClientCorrelator and ChatClient together the way
the desktop chat window uses them:

1. Recognized commands are dispatched as tool calls and acknowledged
   immediately; the tool result is shown when its response arrives.
2. Anything else goes to the external chat API if an API key is set.

Protocol errors and ``isError`` results are both shown as failures, with
different phrasing.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import ValidationError

from ..protocol import ResponseEnvelope
from .chat import ChatClient
from .correlator import ClientCorrelator
from .intents import Intent, IntentParser, ReadFile, Search, WriteFile
from .transport import ClientTransport

logger = logging.getLogger(__name__)


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    text: str
    is_error: bool = False


MessageListener = Callable[[ChatMessage], Any]

# Acknowledgement shown as soon as an intent is dispatched
ACKNOWLEDGEMENTS: dict[type, str] = {
    ReadFile: "已请求读取文件",
    WriteFile: "已请求写入文件",
    Search: "已请求搜索",
}

MISSING_API_KEY = "需要 DeepSeek API 密钥来处理此消息"


class ChatSession:
    """One user's conversation with the server and the chat API.

    Messages are kept in memory only for the lifetime of the session.
    """

    def __init__(
        self,
        transport: ClientTransport,
        *,
        correlator: ClientCorrelator | None = None,
        chat_client: ChatClient | None = None,
        api_key: str | None = None,
        parser: IntentParser | None = None,
        response_timeout: float | None = 30.0,
        listener: MessageListener | None = None,
    ) -> None:
        self._transport = transport
        self._correlator = correlator or ClientCorrelator()
        self._correlator.attach(transport)
        self._chat = chat_client or ChatClient()
        self._api_key = api_key
        self._parser = parser or IntentParser()
        self._response_timeout = response_timeout
        self._listener = listener
        self._tasks: set[asyncio.Task[None]] = set()
        self.messages: list[ChatMessage] = []

    @property
    def correlator(self) -> ClientCorrelator:
        return self._correlator

    @property
    def is_connected(self) -> bool:
        return self._transport.is_connected

    async def connect(self) -> bool:
        """Connect the transport, reporting the outcome as a system message."""
        try:
            await self._transport.connect()
        except ConnectionError as e:
            self._emit(Role.SYSTEM, f"连接失败: {e}", is_error=True)
            return False
        self._emit(Role.SYSTEM, "已连接到 MCP 服务器")
        return True

    async def disconnect(self) -> None:
        await self._transport.disconnect()
        await self.drain()
        self._emit(Role.SYSTEM, "已断开与 MCP 服务器的连接")

    async def send(self, text: str) -> None:
        """Handle one line of user input."""
        text = text.strip()
        if not text:
            return

        self._emit(Role.USER, text)

        intent = self._parser.parse(text)
        if intent is not None:
            await self._dispatch(intent)
        elif self._api_key:
            await self._complete(text)
        else:
            self._emit(Role.SYSTEM, MISSING_API_KEY, is_error=True)

    async def drain(self) -> None:
        """Wait until every outstanding tool call has been rendered."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _dispatch(self, intent: Intent) -> None:
        try:
            request_id = await self._correlator.dispatch(intent)
        except Exception as e:
            self._emit(Role.SYSTEM, f"处理消息时出错: {e}", is_error=True)
            return

        self._emit(Role.ASSISTANT, ACKNOWLEDGEMENTS[type(intent)])
        task = asyncio.create_task(self._await_response(request_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _await_response(self, request_id: int) -> None:
        try:
            envelope = await self._correlator.wait(request_id, self._response_timeout)
        except ConnectionError as e:
            self._emit(Role.SYSTEM, f"错误: {e}", is_error=True)
            return
        except TimeoutError:
            self._emit(Role.SYSTEM, f"错误: 请求 {request_id} 超时", is_error=True)
            return
        self.render_response(envelope)

    def render_response(self, envelope: ResponseEnvelope) -> None:
        """Show a response envelope to the user."""
        if envelope.error is not None:
            self._emit(Role.SYSTEM, f"MCP 错误: {envelope.error.message}", is_error=True)
            return

        try:
            result = envelope.capability_result()
        except ValidationError:
            logger.debug(f"Response {envelope.id!r} is not a capability result")
            return

        text = result.first_text
        if text:
            self._emit(Role.ASSISTANT, f"MCP 工具结果:\n{text}", is_error=result.is_error)

    async def _complete(self, text: str) -> None:
        try:
            reply = await self._chat.complete(text, self._api_key or "")
        except Exception as e:
            self._emit(Role.SYSTEM, f"处理消息时出错: {e}", is_error=True)
            return
        self._emit(Role.ASSISTANT, reply)

    def _emit(self, role: Role, text: str, is_error: bool = False) -> None:
        message = ChatMessage(role, text, is_error)
        self.messages.append(message)
        if self._listener is not None:
            self._listener(message)
