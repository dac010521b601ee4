"""External chat-completion API.

A single outbound call used when user input is not a recognized command.
Failures are raised as ChatAPIError; they are never wrapped in a protocol
envelope.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import DEFAULT_CHAT_API_BASE
from ..errors import ChatAPIError

logger = logging.getLogger(__name__)

COMPLETIONS_PATH = "/v1/chat/completions"


class ChatClient:
    """DeepSeek-compatible chat completion client."""

    def __init__(
        self,
        api_base: str = DEFAULT_CHAT_API_BASE,
        model: str = "deepseek-chat",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_base = api_base
        self._model = model
        self._timeout = timeout
        self._transport = transport

    async def complete(self, message: str, api_key: str) -> str:
        """Send one user message and return the assistant's reply text.

        Raises:
            ChatAPIError: On network failure, non-2xx status or an
                unexpected response body
        """
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": "user", "content": message}],
            "stream": False,
        }
        headers = {"Authorization": f"Bearer {api_key}"}

        try:
            async with httpx.AsyncClient(
                base_url=self._api_base,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(COMPLETIONS_PATH, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ChatAPIError(f"DeepSeek API call failed: {e}") from e

        if response.is_error:
            raise ChatAPIError(
                "DeepSeek API call failed: API request failed: "
                f"{response.status_code} {response.reason_phrase}"
            )

        try:
            return response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.debug(f"Unexpected chat API response: {response.text[:200]}")
            raise ChatAPIError(f"DeepSeek API call failed: unexpected response: {e!r}") from e
