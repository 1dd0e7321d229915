"""
Root conftest.py for travel-mcp tests.

This file provides:
1. Common pytest markers for test categorization
2. A small travel-planner OpenAPI document
3. A recording upstream built on ``httpx.MockTransport``
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        norm = str(item.fspath).replace("\\", "/")
        if "/tests/integration/" in norm:
            item.add_marker(pytest.mark.integration)
        if "session" in norm or "transport" in norm:
            item.add_marker(pytest.mark.sessions)
        if "openapi" in norm or "schema" in norm or "registry" in norm or "runtime" in norm:
            item.add_marker(pytest.mark.openapi)


def pytest_configure(config):
    """Register custom markers."""
    for name, desc in [
        ("integration", "End-to-end tests over the ASGI app"),
        ("sessions", "Session table and transport tests"),
        ("openapi", "OpenAPI translation and tool registry tests"),
    ]:
        config.addinivalue_line("markers", f"{name}: {desc}")


# =============================================================================
# OPENAPI FIXTURES
# =============================================================================


@pytest.fixture
def travel_spec() -> Dict[str, Any]:
    """Cut-down travel-planner document covering params, bodies and $refs."""
    return {
        "openapi": "3.0.3",
        "info": {"title": "Travel Planner API", "version": "1.0.0"},
        "components": {
            "schemas": {
                "ReviewInput": {
                    "type": "object",
                    "required": ["rating"],
                    "properties": {
                        "rating": {"type": "integer"},
                        "comment": {"type": "string"},
                    },
                }
            }
        },
        "paths": {
            "/health": {
                "get": {"operationId": "health", "summary": "Service health"},
            },
            "/hotels": {
                "get": {
                    "operationId": "listHotels",
                    "summary": "List hotels",
                    "parameters": [
                        {"name": "city", "in": "query", "schema": {"type": "string"}},
                        {"name": "stars", "in": "query", "schema": {"type": "integer"}},
                    ],
                },
            },
            "/hotels/{id}": {
                "get": {
                    "operationId": "getHotel",
                    "parameters": [
                        {"name": "id", "in": "path", "required": True, "schema": {"type": "integer"}}
                    ],
                },
            },
            "/hotels/{id}/reviews": {
                "post": {
                    "operationId": "createHotelReview",
                    "summary": "Review a hotel",
                    "parameters": [
                        {"name": "id", "in": "path", "required": True, "schema": {"type": "integer"}}
                    ],
                    "requestBody": {
                        "required": True,
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/ReviewInput"}
                            }
                        },
                    },
                },
            },
            "/offers/today": {
                "get": {"operationId": "getOffersToday", "summary": "Offers valid today"},
            },
        },
    }


# =============================================================================
# UPSTREAM FIXTURES
# =============================================================================


class RecordingUpstream:
    """Canned responses keyed by ``(METHOD, path)``; records every request."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.routes: Dict[tuple, Callable[[httpx.Request], httpx.Response]] = {}

    def add(self, method: str, path: str, status: int = 200, json_body: Any = None, text: Optional[str] = None):
        def respond(_request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status, text=text)
            return httpx.Response(status, json=json_body)

        self.routes[(method.upper(), path)] = respond
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        respond = self.routes.get((request.method, request.url.path))
        if respond is None:
            return httpx.Response(404, json={"error": "Not found"})
        return respond(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), follow_redirects=True)


@pytest.fixture
def upstream() -> RecordingUpstream:
    return RecordingUpstream()


# =============================================================================
# MCP FIXTURES
# =============================================================================


@pytest.fixture
def init_request() -> Dict[str, Any]:
    """A valid JSON-RPC ``initialize`` request."""
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "initialize",
        "params": {
            "protocolVersion": "2025-06-18",
            "capabilities": {},
            "clientInfo": {"name": "pytest", "version": "0.0.1"},
        },
    }


MCP_HEADERS = {
    "Accept": "application/json, text/event-stream",
    "Content-Type": "application/json",
}


@pytest.fixture
def mcp_headers() -> Dict[str, str]:
    return dict(MCP_HEADERS)
