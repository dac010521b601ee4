"""Built-in capabilities and the default registry."""

from __future__ import annotations

from collections.abc import Iterable

from ..registry import CapabilityDescriptor, CapabilityRegistry
from .prompts import PROMPTS
from .resources import RESOURCES
from .samples import SAMPLES
from .tools import TOOLS

BUILTIN_CAPABILITIES: tuple[CapabilityDescriptor, ...] = (
    *TOOLS,
    *RESOURCES,
    *PROMPTS,
    *SAMPLES,
)


def build_registry(
    descriptors: Iterable[CapabilityDescriptor] = BUILTIN_CAPABILITIES,
) -> CapabilityRegistry:
    """Create a registry holding the given descriptors.

    Raises:
        DuplicateNameError: If two descriptors share a name within a category
    """
    registry = CapabilityRegistry()
    for descriptor in descriptors:
        registry.register(descriptor.category, descriptor)
    return registry


__all__ = ["BUILTIN_CAPABILITIES", "build_registry"]
