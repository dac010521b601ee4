"""Exception types shared by the server and client layers."""

from __future__ import annotations


class CapabilityError(Exception):
    """Base class for capability registry errors."""


class DuplicateNameError(CapabilityError, ValueError):
    """A capability with the same name or URI is already registered."""

    def __init__(self, category: str, name_or_uri: str) -> None:
        self.category = category
        self.name_or_uri = name_or_uri
        super().__init__(f"{category} '{name_or_uri}' already registered")


class NotFoundError(CapabilityError, LookupError):
    """No capability with the requested name or URI exists."""

    def __init__(self, category: str, name_or_uri: str) -> None:
        self.category = category
        self.name_or_uri = name_or_uri
        super().__init__(f"{category} not found: {name_or_uri}")


class DecodeError(ValueError):
    """Raw bytes could not be decoded into a JSON object."""


class ChatAPIError(RuntimeError):
    """The external chat-completion call failed."""
