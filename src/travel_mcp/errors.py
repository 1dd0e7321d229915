"""Error hierarchy for the travel-planner MCP bridge.

Every exception carries a human message plus optional structured ``details``,
a ``hint`` for the operator and a ``docs_url``. Startup problems (bad config,
broken OpenAPI documents, tool name collisions) are raised; failures that
happen while serving a tool call are converted into tool results instead.

Example:
    >>> raise OpenAPIParseError("Invalid YAML", errors=["line 5: syntax error"])
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

__all__ = [
    "BridgeError",
    "ConfigurationError",
    "OpenAPIError",
    "OpenAPIParseError",
    "OpenAPIValidationError",
    "OpenAPINetworkError",
    "ToolNameConflictError",
    "MCPError",
    "MCPToolError",
    "log_exception",
]


def log_exception(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    *,
    level: str = "warning",
    include_traceback: bool = True,
) -> None:
    """Log ``exc`` under ``message`` at the given level."""
    log_fn = getattr(logger, level, logger.warning)
    text = f"{message}: {type(exc).__name__}: {exc}"
    if include_traceback:
        log_fn(text, exc_info=exc)
    else:
        log_fn(text)


# =============================================================================
# Base
# =============================================================================


class BridgeError(Exception):
    """Base class for all bridge errors."""

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        hint: Optional[str] = None,
        docs_url: Optional[str] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.hint = hint
        self.docs_url = docs_url
        super().__init__(str(self))

    def __str__(self) -> str:
        parts = [self.message]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.docs_url:
            parts.append(f"Docs: {self.docs_url}")
        return "\n".join(parts)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class ConfigurationError(BridgeError):
    """Invalid or missing configuration."""

    def __init__(self, message: str, *, config_key: Optional[str] = None, **kwargs: Any) -> None:
        details = dict(kwargs.pop("details", None) or {})
        if config_key:
            details["config_key"] = config_key
        kwargs.setdefault("hint", f"Check the value of {config_key}." if config_key else None)
        self.config_key = config_key
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# OpenAPI
# =============================================================================


class OpenAPIError(BridgeError):
    """Base class for problems with an OpenAPI document."""


class OpenAPIParseError(OpenAPIError):
    """The document could not be parsed as JSON or YAML."""

    def __init__(self, message: str, *, errors: Optional[List[str]] = None, **kwargs: Any) -> None:
        self.errors = list(errors or [])
        kwargs.setdefault("hint", "Make sure the document is valid JSON/YAML.")
        details = dict(kwargs.pop("details", None) or {})
        if self.errors:
            details["errors"] = self.errors
        super().__init__(message, details=details, **kwargs)


class OpenAPIValidationError(OpenAPIError):
    """The document parsed but does not have the expected shape."""

    def __init__(
        self, message: str, *, missing_fields: Optional[List[str]] = None, **kwargs: Any
    ) -> None:
        self.missing_fields = list(missing_fields or [])
        if self.missing_fields:
            kwargs.setdefault("hint", f"Add the missing field(s): {', '.join(self.missing_fields)}.")
        super().__init__(message, details={"missing_fields": self.missing_fields}, **kwargs)


class OpenAPINetworkError(OpenAPIError):
    """Fetching a remote document failed."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        self.url = url
        self.status_code = status_code
        if status_code in (401, 403):
            kwargs.setdefault("hint", "Authentication is required to fetch this document.")
        elif status_code == 404:
            kwargs.setdefault("hint", "The document was not found; check the URL.")
        else:
            kwargs.setdefault("hint", "Check that the service is reachable.")
        super().__init__(message, details={"url": url, "status_code": status_code}, **kwargs)


class ToolNameConflictError(ConfigurationError):
    """Two operations produce the same tool name (or a label is registered twice)."""

    def __init__(
        self,
        tool_name: str,
        *,
        first: Optional[str] = None,
        second: Optional[str] = None,
    ) -> None:
        self.tool_name = tool_name
        self.first = first
        self.second = second
        super().__init__(
            f"Tool name '{tool_name}' is already registered",
            details={"tool_name": tool_name, "first": first, "second": second},
            hint="Give the colliding operations distinct operationIds.",
        )


# =============================================================================
# MCP
# =============================================================================


class MCPError(BridgeError):
    """Base class for errors raised while serving MCP traffic."""


class MCPToolError(MCPError):
    """A tool call could not be dispatched."""

    def __init__(self, message: str, *, tool_name: Optional[str] = None, **kwargs: Any) -> None:
        self.tool_name = tool_name
        details = dict(kwargs.pop("details", None) or {})
        if tool_name:
            details["tool_name"] = tool_name
        super().__init__(message, details=details, **kwargs)

