import os

from dotenv import find_dotenv, load_dotenv

if not os.environ.get("TRAVEL_MCP_ENV_LOADED"):
    load_dotenv(find_dotenv(usecwd=True))
    os.environ["TRAVEL_MCP_ENV_LOADED"] = "1"

from travel_mcp.errors import (
    BridgeError,
    ConfigurationError,
    MCPError,
    OpenAPIError,
    ToolNameConflictError,
)
from travel_mcp.logging import configure_logging, get_logger
from travel_mcp.openapi import ToolRegistry, load_openapi, register_operations
from travel_mcp.server import create_app
from travel_mcp.settings import BridgeSettings, load_settings

__version__ = "1.0.0"

__all__ = [
    "BridgeError",
    "BridgeSettings",
    "ConfigurationError",
    "MCPError",
    "OpenAPIError",
    "ToolNameConflictError",
    "ToolRegistry",
    "configure_logging",
    "create_app",
    "get_logger",
    "load_openapi",
    "load_settings",
    "register_operations",
]
