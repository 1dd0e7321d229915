"""
Command line entry point.

Usage:
    travel-mcp                          # serve with settings from the environment
    travel-mcp --port 4000 --json-response
    travel-mcp --enable-admin --allowed-hosts '*'
"""

from __future__ import annotations

from typing import Optional

import typer
import uvicorn
from rich.console import Console

from travel_mcp.errors import BridgeError
from travel_mcp.logging import configure_logging
from travel_mcp.server import create_app
from travel_mcp.settings import load_settings

console = Console(stderr=True)

app = typer.Typer(add_completion=False, help="Serve the travel-planner API as MCP tools over streamable HTTP")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Listen address (MCP_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Listen port (MCP_PORT)"),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Proxied API base URL (MCP_BASE_URL)"),
    client_openapi: Optional[str] = typer.Option(
        None, "--client-openapi", help="Client OpenAPI document: path, URL or inline JSON"
    ),
    admin_openapi: Optional[str] = typer.Option(None, "--admin-openapi", help="Admin OpenAPI document"),
    enable_admin: Optional[bool] = typer.Option(
        None, "--enable-admin/--no-enable-admin", help="Also register the admin profile"
    ),
    allowed_hosts: Optional[str] = typer.Option(
        None, "--allowed-hosts", help="Comma-separated Host allowlist, '*' for any"
    ),
    json_response: Optional[bool] = typer.Option(
        None, "--json-response/--sse", help="Answer with JSON instead of an SSE stream"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="human or json"),
):
    """Start the MCP bridge."""
    try:
        settings = load_settings(
            host=host,
            port=port,
            base_url=base_url,
            client_openapi=client_openapi,
            admin_openapi=admin_openapi,
            enable_admin=enable_admin,
            log_level=log_level.upper() if log_level else None,
            log_format=log_format,
            json_response=json_response,
        )
        if allowed_hosts is not None:
            hosts = [h.strip() for h in allowed_hosts.split(",") if h.strip()]
            settings = settings.model_copy(
                update={"allowed_hosts": None if hosts == ["*"] else hosts}
            )

        configure_logging(settings.log_level, settings.log_format)
        asgi = create_app(settings)
    except BridgeError as e:
        console.print(f"[bold red]Startup failed:[/bold red] {e}")
        raise typer.Exit(1)

    labels = ", ".join(p.label for p in settings.profiles())
    console.print(
        f"[bold]{settings.server_name}[/bold] {settings.server_version} "
        f"on http://{settings.host}:{settings.port}/mcp "
        f"([cyan]{len(asgi.state.registry)}[/cyan] tools; {labels})"
    )
    uvicorn.run(asgi, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
