"""Tests for the travel-mcp command line entry point."""

from __future__ import annotations

import json
import logging
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from travel_mcp.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("MCP_HOST", "MCP_PORT", "MCP_ENABLE_ADMIN", "MCP_ALLOWED_HOSTS", "MCP_JSON_RESPONSE"):
        monkeypatch.delenv(key, raising=False)
    yield
    root = logging.getLogger("travel_mcp")
    for handler in list(root.handlers):
        if getattr(handler, "_travel_mcp", False):
            root.removeHandler(handler)


@pytest.fixture
def spec_file(tmp_path, travel_spec):
    path = tmp_path / "openapi-client.json"
    path.write_text(json.dumps(travel_spec), encoding="utf-8")
    return path


class TestServe:
    def test_options_reach_uvicorn(self, spec_file):
        with patch("travel_mcp.cli.uvicorn.run") as run:
            result = runner.invoke(
                app,
                [
                    "--client-openapi",
                    str(spec_file),
                    "--host",
                    "127.0.0.1",
                    "--port",
                    "4000",
                    "--allowed-hosts",
                    "*",
                    "--json-response",
                ],
            )
        assert result.exit_code == 0, result.output
        run.assert_called_once()
        asgi = run.call_args.args[0]
        assert run.call_args.kwargs["host"] == "127.0.0.1"
        assert run.call_args.kwargs["port"] == 4000
        assert len(asgi.state.registry) == 5
        assert asgi.state.settings.allowed_hosts is None
        assert asgi.state.settings.json_response is True

    def test_allowed_hosts_list(self, spec_file):
        with patch("travel_mcp.cli.uvicorn.run") as run:
            result = runner.invoke(
                app, ["--client-openapi", str(spec_file), "--allowed-hosts", "localhost, api.test"]
            )
        assert result.exit_code == 0, result.output
        assert run.call_args.args[0].state.settings.allowed_hosts == ["localhost", "api.test"]

    def test_broken_document_exits_with_error(self, tmp_path):
        broken = tmp_path / "broken.json"
        broken.write_text("{not json", encoding="utf-8")
        with patch("travel_mcp.cli.uvicorn.run") as run:
            result = runner.invoke(app, ["--client-openapi", str(broken)])
        assert result.exit_code == 1
        run.assert_not_called()
