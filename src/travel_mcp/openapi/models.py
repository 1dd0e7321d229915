from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "OpenAPIDocument",
    "ParameterDescriptor",
    "OperationDescriptor",
    "ToolResult",
    "ToolDescriptor",
    "ResourceDescriptor",
    "RegistrationOptions",
    "RegistrationReport",
]

OpenAPIDocument = Dict[str, Any]


class ParameterDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    location: Literal["path", "query"]
    required: bool = False
    schema_: Dict[str, Any] = Field(default_factory=lambda: {"type": "string"}, alias="schema")
    description: Optional[str] = None


class OperationDescriptor(BaseModel):
    """One path + method entry of an OpenAPI document."""

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    operation_id: str
    parameters: Tuple[ParameterDescriptor, ...] = ()
    request_body: Optional[Dict[str, Any]] = None
    body_required: bool = False
    summary: Optional[str] = None
    description: Optional[str] = None

    @property
    def has_body(self) -> bool:
        return self.request_body is not None

    @property
    def path_params(self) -> List[ParameterDescriptor]:
        return [p for p in self.parameters if p.location == "path"]

    @property
    def query_params(self) -> List[ParameterDescriptor]:
        return [p for p in self.parameters if p.location == "query"]


class ToolResult(BaseModel):
    """Outcome of one tool invocation, rendered as a single text block."""

    model_config = ConfigDict(frozen=True)

    text: str
    is_error: bool = False

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls(text=text, is_error=True)


ToolInvoker = Callable[[Dict[str, Any]], Awaitable[ToolResult]]


class ToolDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    title: str
    description: str
    label: str
    input_schema: Dict[str, Any]
    operation: OperationDescriptor
    invoke: ToolInvoker = Field(repr=False)


class ResourceDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    uri: str
    title: str
    description: str
    text: str
    mime_type: str = "application/json"


class RegistrationOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    base_url: str
    default_credential: Optional[str] = None


class RegistrationReport(BaseModel):
    """Summary of a single registration pass."""

    label: str
    title: Optional[str] = None
    total_ops: int = 0
    registered_tools: int = 0
    tool_names: List[str] = Field(default_factory=list)
    # (METHOD path, reason)
    skipped: List[Tuple[str, str]] = Field(default_factory=list)
