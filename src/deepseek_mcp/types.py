"""Core value types shared by the registry, dispatch core and client.

Content items are a tagged union on ``type``. Only the ``text`` variant is
produced today. Decoding rejects unknown tags; new variants are added here
as additional tagged models.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
    """Capability categories. Each is an independent namespace."""

    TOOL = "tool"
    RESOURCE = "resource"
    PROMPT = "prompt"
    SAMPLE = "sample"

    @property
    def plural(self) -> str:
        """Key used for list results (``tools``, ``resources``, ...)."""
        return f"{self.value}s"

    @property
    def identifier_key(self) -> str:
        """Wire key identifying a capability of this category."""
        return "uri" if self in (Category.RESOURCE, Category.SAMPLE) else "name"

    @property
    def uri_scheme(self) -> str | None:
        """URI scheme for URI-addressed categories."""
        if self is Category.RESOURCE:
            return "resource://"
        if self is Category.SAMPLE:
            return "sample://"
        return None

    def qualify(self, identifier: str) -> str:
        """Expand a bare path (``system/info``) to a full URI for this category."""
        scheme = self.uri_scheme
        if scheme is None or "://" in identifier:
            return identifier
        return f"{scheme}{identifier}"


class TextContent(BaseModel):
    """Plain text content item."""

    type: Literal["text"] = "text"
    text: str


# Tagged union of content variants
ContentItem = TextContent


class CapabilityResult(BaseModel):
    """Outcome of a capability call.

    ``is_error`` marks a handled-but-failed operation (file not found, ...).
    That is still a successful protocol exchange, unlike a protocol error
    which travels in the response envelope's ``error`` field.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    content: list[ContentItem] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def text(cls, text: str) -> CapabilityResult:
        """Successful result with a single text item."""
        return cls(content=[TextContent(text=text)])

    @classmethod
    def failure(cls, message: str) -> CapabilityResult:
        """Handled failure with a single text item."""
        return cls(content=[TextContent(text=message)], is_error=True)

    @property
    def first_text(self) -> str:
        """Text of the first text item, or an empty string."""
        for item in self.content:
            if item.type == "text":
                return item.text
        return ""


@dataclass(frozen=True)
class DispatchFailure:
    """A capability invocation that did not produce a CapabilityResult."""

    message: str
    code: str = "HANDLER_ERROR"
