"""MCP Stream Runtime CLI.

Default mode is stdio (for subprocess integration).
Use --http to run the streamable HTTP server.

Usage:
    mcp-stream-runtime                        # Stdio mode (default)
    mcp-stream-runtime --http                 # HTTP server mode
    mcp-stream-runtime --http --port 8080     # HTTP with custom port
    mcp-stream-runtime --health               # Check HTTP server health

Stdio mode keeps stdout for protocol messages only; all diagnostics
go to stderr.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

import click
import httpx

from . import __version__

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def configure_logging(level: str) -> None:
    """Send all logging to stderr."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


@click.command()
@click.option("--http", "http_mode", is_flag=True, help="Run as HTTP server instead of stdio")
@click.option("--host", envvar="HOST", default="127.0.0.1", help="Host to bind to (HTTP mode)")
@click.option("--port", envvar="PORT", default=3000, help="Port to bind to (HTTP mode)")
@click.option(
    "--allowed-origins",
    envvar="ALLOWED_ORIGINS",
    default="",
    help="Comma-separated origins allowed to call the server (HTTP mode)",
)
@click.option("--reload", is_flag=True, help="Enable auto-reload for development (HTTP mode)")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    help="Logging level (logs go to stderr)",
)
@click.option("--health", "health_check", is_flag=True, help="Check HTTP server health and exit")
@click.option("--health-url", default="http://localhost:3000", help="Server URL for health check")
@click.version_option(__version__, "--version", "-v", message="%(version)s")
def main(
    http_mode: bool,
    host: str,
    port: int,
    allowed_origins: str,
    reload: bool,
    log_level: str,
    health_check: bool,
    health_url: str,
) -> None:
    """MCP Stream Runtime - JSON-RPC server over stdio or streamable HTTP.

    By default, runs in stdio mode for subprocess/IPC communication.
    Use --http to run as an HTTP server.
    """
    if reload and not http_mode:
        raise click.UsageError(
            "--reload requires --http mode. "
            "Auto-reload is only available when running as an HTTP server."
        )

    configure_logging(log_level)

    if health_check:
        _do_health_check(health_url)
        return

    if http_mode:
        _run_http_server(host, port, allowed_origins, reload)
    else:
        _run_stdio_server()


def _do_health_check(url: str) -> None:
    """Query /health and exit non-zero if the server is unhealthy."""
    try:
        response = httpx.get(f"{url.rstrip('/')}/health", timeout=5.0)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        click.echo(f"Health check failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"Server healthy: {data.get('status')} ({data.get('sessions', 0)} sessions)")


def _run_http_server(host: str, port: int, allowed_origins: str, reload: bool) -> None:
    """Run HTTP server mode."""
    import uvicorn

    # The app factory reads its configuration from the environment
    os.environ["HOST"] = host
    os.environ["PORT"] = str(port)
    if allowed_origins:
        os.environ["ALLOWED_ORIGINS"] = allowed_origins

    click.echo(f"Starting MCP Stream Runtime on http://{host}:{port}", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(
        "mcp_stream_runtime.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _run_stdio_server() -> None:
    """Run stdio server mode (default)."""
    click.echo(f"Starting MCP Stream Runtime v{__version__} in stdio mode", err=True)

    try:
        asyncio.run(run_stdio())
    except KeyboardInterrupt:
        click.echo("\nShutting down", err=True)


async def run_stdio() -> None:
    """Serve one engine over stdin/stdout until stdin closes."""
    from .engine import create_server
    from .transport.stdio import StdioTransport

    transport = StdioTransport()
    server = create_server()
    await server.connect(transport)
    await transport.wait_closed()


if __name__ == "__main__":
    main()
