"""Tests for loading OpenAPI documents."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from travel_mcp.errors import OpenAPINetworkError, OpenAPIParseError, OpenAPIValidationError
from travel_mcp.openapi import load_openapi

MINIMAL = {"openapi": "3.0.3", "info": {"title": "T", "version": "1"}, "paths": {}}


class TestLoadOpenAPI:
    def test_dict_passthrough(self):
        assert load_openapi(MINIMAL) is MINIMAL

    def test_json_string(self):
        assert load_openapi(json.dumps(MINIMAL)) == MINIMAL

    def test_yaml_string(self):
        text = "openapi: 3.0.3\ninfo:\n  title: T\n  version: '1'\npaths: {}\n"
        assert load_openapi(text)["info"]["title"] == "T"

    def test_json_file(self, tmp_path: Path):
        path = tmp_path / "openapi.json"
        path.write_text(json.dumps(MINIMAL), encoding="utf-8")
        assert load_openapi(path) == MINIMAL
        assert load_openapi(str(path)) == MINIMAL

    def test_yaml_file(self, tmp_path: Path):
        path = tmp_path / "openapi.yaml"
        path.write_text("paths:\n  /health:\n    get: {}\n", encoding="utf-8")
        assert "/health" in load_openapi(path)["paths"]

    def test_invalid_json_file(self, tmp_path: Path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(OpenAPIParseError) as exc_info:
            load_openapi(path)
        assert exc_info.value.errors

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(OpenAPIParseError, match="not found"):
            load_openapi(tmp_path / "missing.json")

    def test_missing_path_string(self):
        with pytest.raises(OpenAPIParseError, match="not found"):
            load_openapi("openapi/does-not-exist.json")

    def test_invalid_yaml(self):
        with pytest.raises(OpenAPIParseError):
            load_openapi("paths:\n  - [unclosed\n")

    def test_no_paths(self):
        with pytest.raises(OpenAPIValidationError) as exc_info:
            load_openapi({"openapi": "3.0.3"})
        assert exc_info.value.missing_fields == ["paths"]

    def test_paths_not_a_mapping(self):
        with pytest.raises(OpenAPIValidationError):
            load_openapi({"paths": ["/a"]})

    def test_non_mapping_document(self):
        with pytest.raises(OpenAPIValidationError):
            load_openapi("- a\n- b\n")

    def test_bundled_documents_load(self):
        root = Path(__file__).resolve().parents[2] / "openapi"
        client = load_openapi(root / "openapi-client.json")
        admin = load_openapi(root / "openapi-admin.json")
        assert "/offers/today" in client["paths"]
        assert "/reports/sales" in admin["paths"]


class TestLoadFromURL:
    def _patch_client(self, monkeypatch, handler):
        real_client = httpx.Client

        def fake_client(*args, **kwargs):
            kwargs["transport"] = httpx.MockTransport(handler)
            return real_client(*args, **kwargs)

        monkeypatch.setattr(httpx, "Client", fake_client)

    def test_fetch_json(self, monkeypatch):
        self._patch_client(monkeypatch, lambda request: httpx.Response(200, json=MINIMAL))
        assert load_openapi("http://api.test/openapi.json") == MINIMAL

    def test_fetch_yaml(self, monkeypatch):
        self._patch_client(
            monkeypatch,
            lambda request: httpx.Response(
                200, text="paths: {}\n", headers={"content-type": "application/yaml"}
            ),
        )
        assert load_openapi("http://api.test/openapi.yaml") == {"paths": {}}

    def test_http_error(self, monkeypatch):
        self._patch_client(monkeypatch, lambda request: httpx.Response(404))
        with pytest.raises(OpenAPINetworkError) as exc_info:
            load_openapi("http://api.test/openapi.json")
        assert exc_info.value.status_code == 404
        assert "not found" in exc_info.value.hint

    def test_connection_error(self, monkeypatch):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        self._patch_client(monkeypatch, refuse)
        with pytest.raises(OpenAPINetworkError) as exc_info:
            load_openapi("https://api.test/openapi.json")
        assert exc_info.value.url == "https://api.test/openapi.json"
