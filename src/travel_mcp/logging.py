"""Logging for the travel-planner MCP bridge.

Two output formats are supported:

- ``human``: ``HH:MM:SS LEVEL    logger: message key=value`` for terminals
- ``json``: one JSON object per line for log shippers

Use :func:`get_logger` to obtain a :class:`StructuredLogger`, which accepts
keyword context on every call::

    logger = get_logger("openapi.registry")
    logger.info("Registered tools", label="client", count=12)
"""

from __future__ import annotations

import json
import logging
import re
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

__all__ = [
    "HumanFormatter",
    "JSONFormatter",
    "RequestLog",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "sanitize_url",
]

ROOT_LOGGER = "travel_mcp"

# Attributes present on every LogRecord; anything else is caller context.
_RESERVED = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "context"}


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    ctx: Dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key not in _RESERVED and not key.startswith("_"):
            ctx[key] = value
    ctx.update(getattr(record, "context", None) or {})
    return ctx


class JSONFormatter(logging.Formatter):
    """Format records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data.update(_record_context(record))
        if record.levelno >= logging.ERROR:
            data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class HumanFormatter(logging.Formatter):
    """Compact, readable single-line format."""

    def format(self, record: logging.LogRecord) -> str:
        ts = time.strftime("%H:%M:%S", time.localtime(record.created))
        line = f"{ts} {record.levelname:<8} {record.name}: {record.getMessage()}"
        ctx = _record_context(record)
        if ctx:
            line += " " + " ".join(f"{k}={v}" for k, v in ctx.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger:
    """Thin wrapper over :class:`logging.Logger` that takes keyword context."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._logger = logging.getLogger(name)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _log(self, level: int, msg: str, exc_info: Any = None, **context: Any) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, msg, exc_info=exc_info, extra={"context": context}, stacklevel=3)

    def debug(self, msg: str, **context: Any) -> None:
        self._log(logging.DEBUG, msg, **context)

    def info(self, msg: str, **context: Any) -> None:
        self._log(logging.INFO, msg, **context)

    def warning(self, msg: str, **context: Any) -> None:
        self._log(logging.WARNING, msg, **context)

    def error(self, msg: str, exc_info: Any = None, **context: Any) -> None:
        self._log(logging.ERROR, msg, exc_info=exc_info, **context)

    def exception(self, msg: str, **context: Any) -> None:
        self._log(logging.ERROR, msg, exc_info=True, **context)


def get_logger(name: str) -> StructuredLogger:
    """Return a structured logger namespaced under ``travel_mcp``."""
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return StructuredLogger(name)


def configure_logging(level: str | int = "INFO", format: str = "human") -> None:
    """Install a single stderr handler on the package logger."""
    root = logging.getLogger(ROOT_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)

    for handler in list(root.handlers):
        if getattr(handler, "_travel_mcp", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if format == "json" else HumanFormatter())
    handler._travel_mcp = True  # type: ignore[attr-defined]
    root.addHandler(handler)


_SECRET_QUERY = re.compile(r"(?i)([?&](?:api[_-]?key|token|access_token|authorization)=)[^&]*")


def sanitize_url(url: str) -> str:
    """Mask credential-looking query parameters."""
    return _SECRET_QUERY.sub(r"\1***", url)


@dataclass
class RequestLog:
    """Timing and outcome of one outbound HTTP call."""

    method: str
    url: str
    status_code: Optional[int] = None
    response_size: Optional[int] = None
    error: Optional[str] = None
    latency_ms: Optional[float] = None
    _started: float = field(default_factory=time.perf_counter, repr=False)

    def complete(
        self,
        *,
        status_code: Optional[int] = None,
        response_size: Optional[int] = None,
        error: Optional[str] = None,
    ) -> "RequestLog":
        self.status_code = status_code
        self.response_size = response_size
        self.error = error
        self.latency_ms = round((time.perf_counter() - self._started) * 1000, 2)
        return self

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "method": self.method,
            "url": sanitize_url(self.url),
            "status_code": self.status_code,
            "latency_ms": self.latency_ms,
        }
        if self.response_size is not None:
            data["response_size"] = self.response_size
        if self.error:
            data["error"] = self.error
        return data
