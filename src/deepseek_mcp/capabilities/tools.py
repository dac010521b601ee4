"""Built-in tools: file_read, file_write, web_search."""

from __future__ import annotations

import asyncio
import logging

from pydantic import BaseModel, Field

from ..registry import CapabilityDescriptor
from ..types import CapabilityResult, Category
from .files import read_file, write_file

logger = logging.getLogger(__name__)


class FileReadArguments(BaseModel):
    path: str = Field(description="文件路径")


class FileWriteArguments(BaseModel):
    path: str = Field(description="文件路径")
    content: str = Field(description="要写入的内容")


class WebSearchArguments(BaseModel):
    query: str = Field(description="搜索查询")
    max_results: int = Field(default=5, ge=0, description="最大结果数量")


async def file_read(args: FileReadArguments) -> CapabilityResult:
    try:
        content = await asyncio.to_thread(read_file, args.path)
    except (OSError, UnicodeDecodeError) as e:
        logger.info(f"file_read failed for {args.path}: {e}")
        return CapabilityResult.failure(f"读取文件失败: {e}")
    return CapabilityResult.text(content)


async def file_write(args: FileWriteArguments) -> CapabilityResult:
    try:
        await asyncio.to_thread(write_file, args.path, args.content)
    except OSError as e:
        logger.info(f"file_write failed for {args.path}: {e}")
        return CapabilityResult.failure(f"写入文件失败: {e}")
    return CapabilityResult.text(f"文件已成功写入: {args.path}")


def mock_search_results(query: str) -> list[str]:
    """Canned search results; no real search backend is queried."""
    return [
        f'搜索结果 1: 关于 "{query}" 的信息',
        f"搜索结果 2: {query} 的详细解释",
        f"搜索结果 3: {query} 的相关资源",
    ]


async def web_search(args: WebSearchArguments) -> CapabilityResult:
    results = mock_search_results(args.query)[: args.max_results]
    lines = "\n".join(results)
    return CapabilityResult.text(f'搜索 "{args.query}" 的结果:\n{lines}')


TOOLS = (
    CapabilityDescriptor(
        category=Category.TOOL,
        name_or_uri="file_read",
        description="读取文件内容",
        arguments=FileReadArguments,
        handler=file_read,
    ),
    CapabilityDescriptor(
        category=Category.TOOL,
        name_or_uri="file_write",
        description="写入文件内容",
        arguments=FileWriteArguments,
        handler=file_write,
    ),
    CapabilityDescriptor(
        category=Category.TOOL,
        name_or_uri="web_search",
        description="执行网络搜索",
        arguments=WebSearchArguments,
        handler=web_search,
    ),
)
