from __future__ import annotations

import contextlib
from typing import Any, Optional

import httpx
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from travel_mcp.logging import get_logger
from travel_mcp.openapi import RegistrationOptions, ToolRegistry, load_openapi, register_operations
from travel_mcp.settings import BridgeSettings, load_settings

from .mcp import build_mcp_server
from .sessions import SessionStore
from .transport import MCP_SESSION_ID_HEADER, MCPEndpoint, SessionTransportManager, build_security_settings

__all__ = ["build_registry", "create_app", "CORS_ALLOW_HEADERS"]

log = get_logger("server.app")

CORS_ALLOW_HEADERS = [
    "Content-Type",
    MCP_SESSION_ID_HEADER,
    "mcp-protocol-version",
    "Authorization",
    "X-MCP-Proxy-Auth",
]


def build_registry(settings: BridgeSettings, *, client: Optional[httpx.AsyncClient] = None) -> ToolRegistry:
    """Load every enabled OpenAPI profile into a fresh registry.

    Raises on a broken document or a tool name collision; the service does
    not start half-registered.
    """
    registry = ToolRegistry(client=client, timeout=settings.request_timeout)
    for profile in settings.profiles():
        document = load_openapi(profile.spec)
        report = register_operations(
            registry,
            document,
            RegistrationOptions(
                label=profile.label,
                base_url=profile.base_url,
                default_credential=profile.default_credential,
            ),
        )
        for where, reason in report.skipped:
            log.debug("Skipped OpenAPI entry", label=profile.label, entry=where, reason=reason)
    return registry


def create_app(
    settings: Optional[BridgeSettings] = None,
    *,
    registry: Optional[ToolRegistry] = None,
) -> Starlette:
    """ASGI app serving ``/mcp`` and ``/healthz``.

    Example:
        app = create_app(load_settings(json_response=True))
        uvicorn.run(app, host="127.0.0.1", port=3333)
    """
    settings = settings or load_settings()
    registry = registry if registry is not None else build_registry(settings)

    server = build_mcp_server(registry, name=settings.server_name, version=settings.server_version)
    store = SessionStore(ttl=settings.session_ttl, renew_on_access=settings.session_renew)
    manager = SessionTransportManager(
        server,
        store,
        json_response=settings.json_response,
        security_settings=build_security_settings(settings.allowed_hosts, settings.cors_origins),
        max_body_bytes=settings.max_body_bytes,
        sweep_interval=settings.session_sweep_interval,
        allowed_hosts=settings.allowed_hosts,
    )

    @contextlib.asynccontextmanager
    async def lifespan(_app: Any):
        async with manager.run():
            log.info(
                "MCP bridge ready",
                server=settings.server_name,
                tools=len(registry),
                json_response=settings.json_response,
            )
            try:
                yield
            finally:
                await registry.aclose()

    async def health(_req: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "server": settings.server_name,
                "version": settings.server_version,
                "tools": len(registry),
                "sessions": len(store),
            }
        )

    app = Starlette(
        routes=[
            Route("/healthz", endpoint=health, methods=["GET"]),
            Route("/mcp", endpoint=MCPEndpoint(manager), methods=["GET", "POST", "DELETE"]),
        ],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=settings.cors_origins,
                allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
                allow_headers=CORS_ALLOW_HEADERS,
                expose_headers=[MCP_SESSION_ID_HEADER],
            )
        ],
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.session_manager = manager
    return app
