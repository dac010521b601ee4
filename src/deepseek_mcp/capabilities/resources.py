"""Built-in resources: system/info."""

from __future__ import annotations

import platform
import sys

from ..registry import CapabilityDescriptor, NoArguments
from ..types import CapabilityResult, Category

SYSTEM_INFO_URI = "resource://system/info"


def resident_memory_mb() -> int | None:
    """Peak resident set size of this process in MB, None where unsupported."""
    if sys.platform == "win32":
        return None

    import resource

    usage = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return round(usage / divisor)


def system_info_text() -> str:
    memory = resident_memory_mb()
    memory_text = f"{memory}MB" if memory is not None else "unknown"
    return (
        "系统信息:\n"
        f"- 平台: {sys.platform}\n"
        f"- Python 版本: {platform.python_version()}\n"
        f"- 内存使用: {memory_text}"
    )


async def system_info(args: NoArguments) -> CapabilityResult:
    return CapabilityResult.text(system_info_text())


RESOURCES = (
    CapabilityDescriptor(
        category=Category.RESOURCE,
        name_or_uri=SYSTEM_INFO_URI,
        title="system_info",
        description="系统信息",
        mime_type="text/plain",
        handler=system_info,
    ),
)
