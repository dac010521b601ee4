"""Request and response envelopes.

Every transport carries the same JSON shape:

    Request:
        {
            "jsonrpc": "2.0",
            "id": 7,
            "method": "call-tool",
            "params": {"name": "file_read", "arguments": {"path": "/tmp/a.txt"}}
        }

    Response (success):
        {
            "jsonrpc": "2.0",
            "id": 7,
            "result": {"content": [{"type": "text", "text": "..."}], "isError": false}
        }

    Response (protocol error):
        {
            "jsonrpc": "2.0",
            "id": 7,
            "error": {"code": "CAPABILITY_NOT_FOUND", "message": "tool not found: nope"}
        }

The ``id`` is assigned by the caller and echoed verbatim.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..types import CapabilityResult, Category

# Fixed, not negotiated
PROTOCOL_VERSION = "2.0"

RequestId = int | str


class Method(str, Enum):
    """The eight recognized request methods."""

    LIST_TOOLS = "list-tools"
    CALL_TOOL = "call-tool"
    LIST_RESOURCES = "list-resources"
    READ_RESOURCE = "read-resource"
    LIST_PROMPTS = "list-prompts"
    GET_PROMPT = "get-prompt"
    LIST_SAMPLES = "list-samples"
    GET_SAMPLE = "get-sample"

    @property
    def category(self) -> Category:
        """Capability category this method operates on."""
        return _METHOD_CATEGORIES[self]

    @property
    def is_list(self) -> bool:
        """True for the list-style methods."""
        return self.value.startswith("list-")

    @classmethod
    def invoke_for(cls, category: Category) -> Method:
        """The call/get/read method for a category."""
        return _INVOKE_METHODS[category]


_METHOD_CATEGORIES: dict[Method, Category] = {
    Method.LIST_TOOLS: Category.TOOL,
    Method.CALL_TOOL: Category.TOOL,
    Method.LIST_RESOURCES: Category.RESOURCE,
    Method.READ_RESOURCE: Category.RESOURCE,
    Method.LIST_PROMPTS: Category.PROMPT,
    Method.GET_PROMPT: Category.PROMPT,
    Method.LIST_SAMPLES: Category.SAMPLE,
    Method.GET_SAMPLE: Category.SAMPLE,
}

_INVOKE_METHODS: dict[Category, Method] = {
    Category.TOOL: Method.CALL_TOOL,
    Category.RESOURCE: Method.READ_RESOURCE,
    Category.PROMPT: Method.GET_PROMPT,
    Category.SAMPLE: Method.GET_SAMPLE,
}


class ErrorCode(str, Enum):
    """Protocol error codes."""

    INVALID_REQUEST = "INVALID_REQUEST"  # JSON object that is not an envelope
    METHOD_NOT_FOUND = "METHOD_NOT_FOUND"
    CAPABILITY_NOT_FOUND = "CAPABILITY_NOT_FOUND"
    INVALID_PARAMS = "INVALID_PARAMS"
    HANDLER_ERROR = "HANDLER_ERROR"


class RequestParams(BaseModel):
    """Request parameters.

    Tools and prompts are addressed by ``name``, resources and samples by
    ``uri``. Either key is accepted for any category.
    """

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    uri: str | None = None
    arguments: dict[str, Any] | None = None

    @property
    def name_or_uri(self) -> str | None:
        """The capability identifier, whichever key carried it."""
        return self.name if self.name is not None else self.uri


class RequestEnvelope(BaseModel):
    """A request from caller to server.

    ``method`` is kept as a plain string so that unknown methods decode and
    are answered with a protocol error instead of failing validation.
    """

    model_config = ConfigDict(populate_by_name=True)

    protocol_version: str = Field(default=PROTOCOL_VERSION, alias="jsonrpc")
    id: RequestId
    method: str
    params: RequestParams = Field(default_factory=RequestParams)

    @classmethod
    def create(
        cls,
        method: str | Method,
        request_id: RequestId,
        name_or_uri: str | None = None,
        arguments: dict[str, Any] | None = None,
    ) -> RequestEnvelope:
        """Factory building params with the identifier under the right key."""
        method_str = method.value if isinstance(method, Method) else method
        params: dict[str, Any] = {"arguments": arguments}
        if name_or_uri is not None:
            try:
                key = Method(method_str).category.identifier_key
            except ValueError:
                key = "name"
            params[key] = name_or_uri
        return cls(id=request_id, method=method_str, params=RequestParams(**params))

    def to_json(self) -> str:
        """Serialize to wire JSON."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ErrorInfo(BaseModel):
    """Protocol-level error payload."""

    code: str = ErrorCode.HANDLER_ERROR.value
    message: str


class ResponseEnvelope(BaseModel):
    """A response from server to caller.

    Exactly one of ``result`` and ``error`` is present. ``id`` is only
    ``None`` when the request was too malformed to carry one.
    """

    model_config = ConfigDict(populate_by_name=True)

    protocol_version: str = Field(default=PROTOCOL_VERSION, alias="jsonrpc")
    id: RequestId | None
    result: dict[str, Any] | None = None
    error: ErrorInfo | None = None

    @model_validator(mode="after")
    def _exactly_one_outcome(self) -> ResponseEnvelope:
        if (self.result is None) == (self.error is None):
            raise ValueError("response must carry exactly one of 'result' or 'error'")
        return self

    @classmethod
    def success(
        cls, request_id: RequestId | None, result: CapabilityResult | dict[str, Any]
    ) -> ResponseEnvelope:
        """Build a result response."""
        if isinstance(result, CapabilityResult):
            result = result.model_dump(mode="json", by_alias=True)
        return cls(id=request_id, result=result)

    @classmethod
    def failure(
        cls,
        request_id: RequestId | None,
        code: str | ErrorCode,
        message: str,
    ) -> ResponseEnvelope:
        """Build a protocol error response."""
        code_str = code.value if isinstance(code, ErrorCode) else code
        return cls(id=request_id, error=ErrorInfo(code=code_str, message=message))

    @property
    def is_error(self) -> bool:
        """True for protocol errors (not for ``isError`` capability results)."""
        return self.error is not None

    def capability_result(self) -> CapabilityResult:
        """Parse ``result`` as a CapabilityResult.

        Raises:
            ValueError: If this is an error response or the result is a listing
        """
        if self.result is None:
            raise ValueError("error response has no result")
        return CapabilityResult.model_validate(self.result)

    def to_json(self) -> str:
        """Serialize to wire JSON, keeping ``id`` even when it is null."""
        exclude = {key for key in ("result", "error") if getattr(self, key) is None}
        return self.model_dump_json(by_alias=True, exclude=exclude)
