"""Intent parsing for user input.

Maps slash-prefixed chat input to the fixed set of built-in tool calls:

    /read <path>                 → ReadFile(path)
    /write <path> <content...>   → WriteFile(path, content)
    /search <query>              → Search(query, max_results=5)

Anything else (including a prefix with no argument) yields None and the
caller falls back to the external chat API.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

DEFAULT_MAX_RESULTS = 5


@dataclass(frozen=True)
class ReadFile:
    path: str

    tool_name: ClassVar[str] = "file_read"

    def arguments(self) -> dict[str, Any]:
        return {"path": self.path}


@dataclass(frozen=True)
class WriteFile:
    path: str
    content: str

    tool_name: ClassVar[str] = "file_write"

    def arguments(self) -> dict[str, Any]:
        return {"path": self.path, "content": self.content}


@dataclass(frozen=True)
class Search:
    query: str
    max_results: int = DEFAULT_MAX_RESULTS

    tool_name: ClassVar[str] = "web_search"

    def arguments(self) -> dict[str, Any]:
        return {"query": self.query, "max_results": self.max_results}


Intent = ReadFile | WriteFile | Search


class IntentParser:
    """Recognizes ``/read``, ``/write`` and ``/search`` commands."""

    READ_PREFIX = "/read "
    WRITE_PREFIX = "/write "
    SEARCH_PREFIX = "/search "

    def parse(self, text: str) -> Intent | None:
        """Parse user input into an intent, or None if it is not a command."""
        text = text.strip()

        if text.startswith(self.READ_PREFIX):
            path = text[len(self.READ_PREFIX) :].strip()
            return ReadFile(path) if path else None

        if text.startswith(self.WRITE_PREFIX):
            rest = text[len(self.WRITE_PREFIX) :].lstrip()
            path, _, content = rest.partition(" ")
            return WriteFile(path, content) if path else None

        if text.startswith(self.SEARCH_PREFIX):
            query = text[len(self.SEARCH_PREFIX) :].strip()
            return Search(query) if query else None

        return None
