"""Built-in prompt templates: code_review."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..registry import CapabilityDescriptor
from ..types import CapabilityResult, Category

DEFAULT_LANGUAGE = "generic-text"


class CodeReviewArguments(BaseModel):
    code: str = Field(description="要审查的代码")
    language: str = Field(default=DEFAULT_LANGUAGE, description="编程语言")


def render_code_review(code: str, language: str = DEFAULT_LANGUAGE) -> str:
    return (
        f"请对以下{language}代码进行审查:\n"
        f"```{language}\n{code}\n```\n"
        "请提供改进建议和潜在问题。"
    )


async def code_review(args: CodeReviewArguments) -> CapabilityResult:
    return CapabilityResult.text(render_code_review(args.code, args.language))


PROMPTS = (
    CapabilityDescriptor(
        category=Category.PROMPT,
        name_or_uri="code_review",
        description="代码审查提示模板",
        arguments=CodeReviewArguments,
        handler=code_review,
    ),
)
