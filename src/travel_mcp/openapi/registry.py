"""Build MCP tools from an OpenAPI document and proxy their calls over HTTP.

Each path + method becomes one :class:`ToolDescriptor` whose ``invoke``
closure captures only the operation, the registration options and the shared
``httpx.AsyncClient``. Registration also exposes the document itself as a
read-only resource.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from travel_mcp.errors import ToolNameConflictError
from travel_mcp.logging import RequestLog, get_logger

from .io import validate_document
from .models import (
    OpenAPIDocument,
    OperationDescriptor,
    RegistrationOptions,
    RegistrationReport,
    ResourceDescriptor,
    ToolDescriptor,
    ToolInvoker,
    ToolResult,
)
from .runtime import iter_operations, sanitize_tool_name
from .schema import ObjectField, ObjectNode, PrimitiveNode, to_json_schema, translate

__all__ = [
    "ToolRegistry",
    "register_operations",
    "build_input_schema",
    "build_tool",
    "openapi_resource",
    "format_response",
]

logger = get_logger("openapi.registry")

AUTHORIZATION_FIELD = "authorization"
BODY_FIELD = "body"
AUTHORIZATION_DESCRIPTION = (
    "Optional Authorization header override; defaults to the server token for this spec."
)

# Characters encodeURIComponent leaves alone besides alphanumerics and "_.-~".
_URI_COMPONENT_SAFE = "!*'()"


class ToolRegistry:
    """Tools and resources registered from one or more OpenAPI documents.

    Built once at startup and read-only afterwards. Owns the outbound
    ``httpx.AsyncClient`` unless one is passed in.
    """

    def __init__(self, *, client: Optional[httpx.AsyncClient] = None, timeout: float = 30.0) -> None:
        self._own_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._tools: Dict[str, ToolDescriptor] = {}
        self._resources: Dict[str, ResourceDescriptor] = {}

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    @property
    def tools(self) -> List[ToolDescriptor]:
        return list(self._tools.values())

    @property
    def resources(self) -> List[ResourceDescriptor]:
        return list(self._resources.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def get(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)

    def get_resource(self, uri: str) -> Optional[ResourceDescriptor]:
        return self._resources.get(uri) or self._resources.get(uri.rstrip("/"))

    def add_tool(self, tool: ToolDescriptor) -> None:
        existing = self._tools.get(tool.name)
        if existing is not None:
            raise ToolNameConflictError(
                tool.name,
                first=f"{existing.operation.method} {existing.operation.path}",
                second=f"{tool.operation.method} {tool.operation.path}",
            )
        self._tools[tool.name] = tool

    def add_resource(self, resource: ResourceDescriptor) -> None:
        if resource.uri in self._resources:
            raise ToolNameConflictError(resource.uri, first=resource.uri, second=resource.uri)
        self._resources[resource.uri] = resource

    async def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        tool = self._tools.get(name)
        if tool is None:
            return ToolResult.error(f"Unknown tool: {name}")
        return await tool.invoke(dict(arguments or {}))

    async def aclose(self) -> None:
        if self._own_client:
            await self._client.aclose()


# -------- Input schema --------

def build_input_schema(operation: OperationDescriptor, document: Optional[OpenAPIDocument] = None) -> Dict[str, Any]:
    """JSON Schema accepted by the tool for ``operation``.

    Always has an optional ``authorization`` string, one field per path/query
    parameter and, when the operation declares a request body, a ``body`` field.
    Unknown top-level arguments pass through.
    """
    fields: Dict[str, ObjectField] = {
        AUTHORIZATION_FIELD: ObjectField(
            node=PrimitiveNode(primitive="string", description=AUTHORIZATION_DESCRIPTION),
        ),
    }
    for param in operation.parameters:
        fields[param.name] = ObjectField(node=translate(param.schema_, document), required=param.required)
    if operation.has_body:
        fields[BODY_FIELD] = ObjectField(
            node=translate(operation.request_body, document),
            required=operation.body_required,
        )
    return to_json_schema(ObjectNode(fields=fields, unknown="passthrough"))


# -------- Response formatting --------

def _response_data(response: httpx.Response) -> Any:
    if not response.content:
        return ""
    try:
        return response.json()
    except ValueError:
        return response.text


def format_response(response: httpx.Response) -> str:
    payload = {
        "status": response.status_code,
        "statusText": response.reason_phrase,
        "data": _response_data(response),
    }
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _query_items(operation: OperationDescriptor, args: Dict[str, Any]) -> List[Tuple[str, str]]:
    path_names = {p.name for p in operation.path_params}
    items: List[Tuple[str, str]] = []
    for param in operation.query_params:
        if param.name in path_names:
            continue
        value = args.get(param.name)
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            items.extend((param.name, _stringify(v)) for v in value if v is not None)
        else:
            items.append((param.name, _stringify(value)))
    return items


# -------- Invocation --------

def _make_invoker(
    operation: OperationDescriptor,
    options: RegistrationOptions,
    client: httpx.AsyncClient,
    tool_name: str,
) -> ToolInvoker:
    base_url = options.base_url.rstrip("/")

    async def invoke(arguments: Dict[str, Any]) -> ToolResult:
        args = dict(arguments)
        authorization = args.pop(AUTHORIZATION_FIELD, None)
        body = args.pop(BODY_FIELD, None)

        headers: Dict[str, str] = {}
        token = authorization or options.default_credential
        if token:
            headers["Authorization"] = str(token)
        if operation.has_body:
            headers["Content-Type"] = "application/json"

        url_path = operation.path
        for param in operation.path_params:
            value = args.get(param.name)
            if value is None:
                return ToolResult.error(f"Missing required path param: {param.name}")
            encoded = quote(_stringify(value), safe=_URI_COMPONENT_SAFE)
            url_path = url_path.replace("{" + param.name + "}", encoded)

        url = f"{base_url}{url_path}"
        query = _query_items(operation, args)
        request_log = RequestLog(method=operation.method, url=url)

        try:
            response = await client.request(
                operation.method,
                url,
                params=query or None,
                headers=headers,
                json=body if operation.has_body else None,
            )
        except httpx.HTTPError as e:
            message = str(e) or type(e).__name__
            request_log.complete(error=message)
            logger.warning("Outbound call failed", tool=tool_name, **request_log.to_dict())
            return ToolResult.error(message)

        request_log.complete(status_code=response.status_code, response_size=len(response.content))
        logger.info("Outbound call", tool=tool_name, **request_log.to_dict())
        return ToolResult(text=format_response(response), is_error=not response.is_success)

    return invoke


def build_tool(
    operation: OperationDescriptor,
    options: RegistrationOptions,
    client: httpx.AsyncClient,
    document: Optional[OpenAPIDocument] = None,
) -> ToolDescriptor:
    name = sanitize_tool_name(f"{options.label}-{operation.operation_id}")
    return ToolDescriptor(
        name=name,
        title=f"{options.label.upper()} {operation.summary or operation.operation_id}",
        description=operation.description
        or f"{operation.method} {operation.path} (default Authorization: {options.label})",
        label=options.label,
        input_schema=build_input_schema(operation, document),
        operation=operation,
        invoke=_make_invoker(operation, options, client, name),
    )


def openapi_resource(document: OpenAPIDocument, label: str) -> ResourceDescriptor:
    return ResourceDescriptor(
        name=f"openapi-{label}",
        uri=f"travel-planner-{label}://openapi",
        title=f"OpenAPI {label} spec",
        description=f"Travel Planner {label} OpenAPI definition served over MCP",
        text=json.dumps(document, indent=2, ensure_ascii=False),
    )


def register_operations(
    registry: ToolRegistry,
    document: OpenAPIDocument,
    options: RegistrationOptions,
) -> RegistrationReport:
    """Register one tool per operation of ``document`` plus the document resource.

    Raises:
        OpenAPIValidationError: ``document`` has no ``paths`` mapping.
        ToolNameConflictError: a tool name (or the resource URI) is already taken.
    """
    document = validate_document(document)
    info = document.get("info") if isinstance(document.get("info"), dict) else {}
    report = RegistrationReport(label=options.label, title=info.get("title"))

    registry.add_resource(openapi_resource(document, options.label))

    operations, skipped = iter_operations(document)
    report.total_ops = len(operations)
    report.skipped = skipped
    for operation in operations:
        tool = build_tool(operation, options, registry.client, document)
        registry.add_tool(tool)
        report.tool_names.append(tool.name)
    report.registered_tools = len(report.tool_names)

    logger.info(
        "Registered OpenAPI tools",
        label=options.label,
        tools=report.registered_tools,
        skipped=len(report.skipped),
    )
    return report
