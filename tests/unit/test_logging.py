"""Tests for travel-mcp logging module."""

from __future__ import annotations

import json
import logging

import pytest

from travel_mcp.logging import (
    HumanFormatter,
    JSONFormatter,
    RequestLog,
    StructuredLogger,
    configure_logging,
    get_logger,
    sanitize_url,
)


def _record(msg="Test message", level=logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="travel_mcp.test",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# =============================================================================
# Formatters
# =============================================================================


class TestJSONFormatter:
    def test_format_basic_message(self) -> None:
        data = json.loads(JSONFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "travel_mcp.test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert "location" not in data

    def test_context_is_flattened(self) -> None:
        data = json.loads(JSONFormatter().format(_record(context={"tool": "client-health"})))
        assert data["tool"] == "client-health"

    def test_error_has_location(self) -> None:
        data = json.loads(JSONFormatter().format(_record(level=logging.ERROR)))
        assert data["location"]["line"] == 10


class TestHumanFormatter:
    def test_format_with_context(self) -> None:
        line = HumanFormatter().format(_record(context={"label": "client", "tools": 3}))
        assert "INFO" in line
        assert "travel_mcp.test: Test message" in line
        assert line.endswith("label=client tools=3")


# =============================================================================
# Loggers
# =============================================================================


class TestStructuredLogger:
    def test_get_logger_prefix(self) -> None:
        assert get_logger("server.app").name == "travel_mcp.server.app"
        assert get_logger("travel_mcp.x").name == "travel_mcp.x"

    def test_context_reaches_record(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = StructuredLogger("travel_mcp.ctx")
        with caplog.at_level(logging.INFO, logger="travel_mcp.ctx"):
            logger.info("Session initialized", session_id="abc")
        assert caplog.records[-1].context == {"session_id": "abc"}

    def test_configure_logging_replaces_handler(self) -> None:
        configure_logging("DEBUG", "json")
        configure_logging("WARNING", "human")
        root = logging.getLogger("travel_mcp")
        ours = [h for h in root.handlers if getattr(h, "_travel_mcp", False)]
        assert len(ours) == 1
        assert isinstance(ours[0].formatter, HumanFormatter)
        assert root.level == logging.WARNING
        for handler in ours:
            root.removeHandler(handler)


# =============================================================================
# Request logging
# =============================================================================


class TestRequestLog:
    def test_complete(self) -> None:
        log = RequestLog(method="GET", url="http://api.test/offers/today")
        log.complete(status_code=200, response_size=12)
        data = log.to_dict()
        assert data["status_code"] == 200
        assert data["response_size"] == 12
        assert data["latency_ms"] >= 0
        assert "error" not in data

    def test_error(self) -> None:
        data = RequestLog(method="GET", url="http://api.test").complete(error="refused").to_dict()
        assert data["error"] == "refused"
        assert data["status_code"] is None

    def test_sanitize_url(self) -> None:
        assert sanitize_url("http://a.test/x?token=abc&city=Rio") == "http://a.test/x?token=***&city=Rio"
