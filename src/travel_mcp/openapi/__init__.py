from .io import load_openapi, validate_document
from .models import (
    OperationDescriptor,
    ParameterDescriptor,
    RegistrationOptions,
    RegistrationReport,
    ResourceDescriptor,
    ToolDescriptor,
    ToolResult,
)
from .registry import ToolRegistry, register_operations
from .runtime import sanitize_tool_name
from .schema import SchemaNode, to_json_schema, translate

__all__ = [
    "load_openapi",
    "validate_document",
    "OperationDescriptor",
    "ParameterDescriptor",
    "RegistrationOptions",
    "RegistrationReport",
    "ResourceDescriptor",
    "ToolDescriptor",
    "ToolResult",
    "ToolRegistry",
    "register_operations",
    "sanitize_tool_name",
    "SchemaNode",
    "to_json_schema",
    "translate",
]
