"""Capability registry.

Four independent namespaces (tools, resources, prompt templates, samples)
mapping a unique name or URI to a descriptor. Registration happens once
while the server is built; afterwards the registry is only read, so it is
shared across connections without locking.

Usage:
    registry = CapabilityRegistry()
    registry.register(Category.TOOL, CapabilityDescriptor(
        category=Category.TOOL,
        name_or_uri="echo",
        description="Echo the input back",
        arguments=EchoArguments,
        handler=echo,
    ))

    registry.list(Category.TOOL)          # public metadata, registration order
    registry.lookup(Category.TOOL, "echo")
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from .errors import DuplicateNameError, NotFoundError
from .types import CapabilityResult, Category, DispatchFailure

logger = logging.getLogger(__name__)


class NoArguments(BaseModel):
    """Contract for capabilities that take no arguments."""


# The actual signature is: async (validated arguments model) -> CapabilityResult
CapabilityHandler = Callable[[Any], Awaitable[CapabilityResult]]


@dataclass(frozen=True)
class CapabilityDescriptor:
    """A registered capability.

    Attributes:
        category: Namespace the capability lives in
        name_or_uri: Unique identifier within the category
        description: Human-readable description
        handler: Async function receiving the validated arguments model
        arguments: Pydantic model acting as the input contract
        title: Optional display name (resources and samples)
        mime_type: Optional MIME type of the produced content
    """

    category: Category
    name_or_uri: str
    description: str
    handler: CapabilityHandler
    arguments: type[BaseModel] = NoArguments
    title: str | None = None
    mime_type: str | None = None

    def __post_init__(self) -> None:
        if not self.name_or_uri:
            raise ValueError("Capability name cannot be empty")
        if not callable(self.handler):
            raise ValueError(f"Handler for '{self.name_or_uri}' must be callable")

    @property
    def input_contract(self) -> dict[str, Any]:
        """JSON Schema of the accepted arguments."""
        return self.arguments.model_json_schema()

    def public_metadata(self) -> dict[str, Any]:
        """Listing entry. Never includes the handler."""
        metadata: dict[str, Any] = {self.category.identifier_key: self.name_or_uri}
        if self.title:
            metadata["name"] = self.title
        metadata["description"] = self.description
        if self.mime_type:
            metadata["mimeType"] = self.mime_type
        metadata["inputSchema"] = self.input_contract
        return metadata

    async def invoke(self, arguments: dict[str, Any]) -> CapabilityResult | DispatchFailure:
        """Validate arguments and run the handler.

        Never raises: contract violations and handler crashes come back as
        a DispatchFailure so the caller can answer with a protocol error.
        """
        try:
            validated = self.arguments.model_validate(arguments)
        except ValidationError as e:
            return DispatchFailure(
                f"Invalid arguments for {self.name_or_uri}: {_summarize(e)}",
                code="INVALID_PARAMS",
            )

        try:
            result = await self.handler(validated)
        except Exception as e:
            logger.exception(f"Capability '{self.name_or_uri}' raised: {e}")
            return DispatchFailure(str(e) or type(e).__name__)

        if not isinstance(result, CapabilityResult):
            return DispatchFailure(
                f"Capability '{self.name_or_uri}' returned {type(result).__name__}, "
                "expected CapabilityResult"
            )
        return result


def _summarize(error: ValidationError) -> str:
    """One-line description of a validation error."""
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "arguments"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


class CapabilityRegistry:
    """Name → descriptor mappings, one per category."""

    def __init__(self) -> None:
        self._capabilities: dict[Category, dict[str, CapabilityDescriptor]] = {
            category: {} for category in Category
        }

    def register(self, category: Category, descriptor: CapabilityDescriptor) -> None:
        """Register a capability.

        Raises:
            DuplicateNameError: If the name or URI is taken in this category
            ValueError: If the descriptor belongs to another category
        """
        if descriptor.category is not category:
            raise ValueError(
                f"Descriptor '{descriptor.name_or_uri}' is a {descriptor.category.value}, "
                f"cannot register it as a {category.value}"
            )
        entries = self._capabilities[category]
        if descriptor.name_or_uri in entries:
            raise DuplicateNameError(category.value, descriptor.name_or_uri)
        entries[descriptor.name_or_uri] = descriptor
        logger.debug(f"Registered {category.value}: {descriptor.name_or_uri}")

    def list(self, category: Category) -> list[dict[str, Any]]:
        """Public metadata of every capability in registration order."""
        return [d.public_metadata() for d in self._capabilities[category].values()]

    def lookup(self, category: Category, name_or_uri: str) -> CapabilityDescriptor:
        """Find a capability. Bare paths are accepted for URI categories.

        Raises:
            NotFoundError: If no such capability exists
        """
        entries = self._capabilities[category]
        descriptor = entries.get(name_or_uri) or entries.get(category.qualify(name_or_uri))
        if descriptor is None:
            raise NotFoundError(category.value, name_or_uri)
        return descriptor

    def names(self, category: Category) -> list[str]:
        """Registered identifiers in a category."""
        return list(self._capabilities[category].keys())

    @property
    def count(self) -> int:
        """Total number of registered capabilities."""
        return sum(len(entries) for entries in self._capabilities.values())
