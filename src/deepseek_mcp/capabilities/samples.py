"""Built-in samples: python/hello-world."""

from __future__ import annotations

from ..registry import CapabilityDescriptor, NoArguments
from ..types import CapabilityResult, Category

HELLO_WORLD_URI = "sample://python/hello-world"
HELLO_WORLD_SOURCE = 'print("Hello, World!")'


async def python_hello_world(args: NoArguments) -> CapabilityResult:
    return CapabilityResult.text(HELLO_WORLD_SOURCE)


SAMPLES = (
    CapabilityDescriptor(
        category=Category.SAMPLE,
        name_or_uri=HELLO_WORLD_URI,
        title="python_hello_world",
        description="Python Hello World 示例",
        mime_type="text/plain",
        handler=python_hello_world,
    ),
)
