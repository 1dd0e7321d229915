from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

from .models import OpenAPIDocument, OperationDescriptor, ParameterDescriptor

__all__ = [
    "HTTP_METHODS",
    "MAX_TOOL_NAME_LENGTH",
    "sanitize_tool_name",
    "fallback_operation_id",
    "merge_parameters",
    "make_operation",
    "iter_operations",
]

HTTP_METHODS = ("get", "put", "post", "delete", "patch", "head", "options", "trace")
MAX_TOOL_NAME_LENGTH = 64

_UNSAFE_TOOL_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_NON_ALNUM_RUN = re.compile(r"[^A-Za-z0-9]+")


def sanitize_tool_name(raw: str) -> str:
    """Replace characters outside ``[A-Za-z0-9_-]`` with ``-`` and cap the length.

    Idempotent: ``sanitize_tool_name(sanitize_tool_name(x)) == sanitize_tool_name(x)``.
    """
    return _UNSAFE_TOOL_CHARS.sub("-", raw)[:MAX_TOOL_NAME_LENGTH]


def fallback_operation_id(method: str, path: str) -> str:
    """``get /hotels/{id}`` -> ``get_hotels_id_``, used when operationId is absent."""
    return _NON_ALNUM_RUN.sub("_", f"{method.lower()}_{path}")


def merge_parameters(path_item: Dict[str, Any] | None, op: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Merge path-level and operation-level parameters with op-level overriding.

    Does not resolve $ref. Skips invalid parameter objects.
    """
    merged: List[Dict[str, Any]] = []
    index: Dict[Tuple[str, str], int] = {}
    sources = ((path_item or {}).get("parameters") or [], op.get("parameters") or [])
    for params in sources:
        if not isinstance(params, list):
            continue
        for src in params:
            if not (isinstance(src, dict) and isinstance(src.get("name"), str) and "in" in src):
                continue
            key = (src["in"], src["name"])
            if key in index:
                merged[index[key]] = src
            else:
                index[key] = len(merged)
                merged.append(src)
    return merged


def _json_body_schema(op: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Schema for the operation's request body, or None when it has none."""
    body = op.get("requestBody")
    if body is None:
        return None
    content = body.get("content") if isinstance(body, dict) else None
    json_media = (content or {}).get("application/json") if isinstance(content, dict) else None
    schema = json_media.get("schema") if isinstance(json_media, dict) else None
    return schema if isinstance(schema, dict) and schema else {"type": "object"}


def make_operation(path: str, method: str, path_item: Dict[str, Any], op: Dict[str, Any]) -> OperationDescriptor:
    params: List[ParameterDescriptor] = []
    for p in merge_parameters(path_item, op):
        location = p.get("in")
        if location not in ("path", "query"):
            continue
        schema = p.get("schema") if isinstance(p.get("schema"), dict) else {"type": "string"}
        description = p.get("description") if isinstance(p.get("description"), str) else None
        if description and "description" not in schema:
            schema = {**schema, "description": description}
        params.append(
            ParameterDescriptor(
                name=p["name"],
                location=location,
                required=bool(p.get("required")),
                schema=schema,
                description=description,
            )
        )

    request_body = op.get("requestBody")
    body_schema = _json_body_schema(op)
    operation_id = op.get("operationId")
    if not isinstance(operation_id, str) or not operation_id:
        operation_id = fallback_operation_id(method, path)

    return OperationDescriptor(
        method=method.upper(),
        path=path,
        operation_id=operation_id,
        parameters=tuple(params),
        request_body=body_schema,
        body_required=bool(body_schema is not None and isinstance(request_body, dict) and request_body.get("required")),
        summary=op.get("summary") if isinstance(op.get("summary"), str) else None,
        description=op.get("description") if isinstance(op.get("description"), str) else None,
    )


def iter_operations(
    document: OpenAPIDocument,
) -> Tuple[List[OperationDescriptor], List[Tuple[str, str]]]:
    """Derive every operation in ``document``.

    Returns the operations in document order plus ``(METHOD path, reason)``
    for each method-level key that was skipped. The ``parameters`` key and
    ``x-`` vendor extensions are not operations and are skipped silently.
    """
    operations: List[OperationDescriptor] = []
    skipped: List[Tuple[str, str]] = []
    for path, path_item in (document.get("paths") or {}).items():
        if not isinstance(path_item, dict):
            skipped.append((str(path), "path item is not a mapping"))
            continue
        for method, op in path_item.items():
            method = str(method)
            if method == "parameters" or method.startswith("x-"):
                continue
            if method.lower() not in HTTP_METHODS:
                skipped.append((f"{method.upper()} {path}", "not an HTTP method"))
                continue
            if not isinstance(op, dict):
                skipped.append((f"{method.upper()} {path}", "operation is not a mapping"))
                continue
            operations.append(make_operation(path, method.lower(), path_item, op))
    return operations, skipped
