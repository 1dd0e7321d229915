from __future__ import annotations

from typing import Any, Dict, List

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from pydantic import AnyUrl

from travel_mcp.errors import MCPError, MCPToolError
from travel_mcp.logging import get_logger
from travel_mcp.openapi import ToolRegistry

__all__ = ["build_mcp_server"]

logger = get_logger("server.mcp")


def build_mcp_server(
    registry: ToolRegistry,
    *,
    name: str = "travel-planner-streamable",
    version: str = "1.0.0",
) -> Server:
    """Low-level MCP server exposing the registry's tools and resources.

    A tool result flagged as an error is raised as :class:`MCPToolError`; the
    SDK turns it into ``CallToolResult(isError=True)`` carrying the same text.
    """
    server: Server = Server(name, version=version)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [
            types.Tool(
                name=tool.name,
                title=tool.title,
                description=tool.description,
                inputSchema=tool.input_schema,
            )
            for tool in registry.tools
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        result = await registry.call(name, arguments)
        if result.is_error:
            logger.info("Tool call returned an error", tool=name)
            raise MCPToolError(result.text, tool_name=name)
        return [types.TextContent(type="text", text=result.text)]

    @server.list_resources()
    async def list_resources() -> List[types.Resource]:
        return [
            types.Resource(
                name=resource.name,
                uri=AnyUrl(resource.uri),
                title=resource.title,
                description=resource.description,
                mimeType=resource.mime_type,
            )
            for resource in registry.resources
        ]

    @server.read_resource()
    async def read_resource(uri: AnyUrl) -> List[ReadResourceContents]:
        resource = registry.get_resource(str(uri))
        if resource is None:
            raise MCPError(f"Unknown resource: {uri}")
        return [ReadResourceContents(content=resource.text, mime_type=resource.mime_type)]

    return server
