"""MCP Stream Runtime application.

Creates the Starlette ASGI application:
- /mcp    - streamable HTTP endpoint (path configurable)
- /health - health check

The session registry is owned by the app and closed on shutdown.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncIterator

from starlette.applications import Starlette
from starlette.routing import Route

from .config import ServerConfig
from .engine import create_server
from .errors import TransportError
from .middleware import build_middleware
from .registry import SessionRegistry
from .routes import EngineFactory, StreamableHttpEndpoint, health_routes, transport_error_handler


def create_app(
    config: ServerConfig | None = None,
    *,
    registry: SessionRegistry | None = None,
    engine_factory: EngineFactory | None = None,
) -> Starlette:
    """Create the HTTP application.

    Args:
        config: Server configuration. Defaults to ``ServerConfig.from_env()``.
        registry: Session registry. A fresh one is created if omitted.
        engine_factory: Builds one protocol engine per session.

    Returns:
        Configured Starlette application
    """
    config = config or ServerConfig.from_env()
    registry = registry if registry is not None else SessionRegistry()
    endpoint = StreamableHttpEndpoint(config, registry, engine_factory or create_server)

    routes: list[Route] = []
    routes.extend(health_routes(registry))
    routes.extend(endpoint.routes)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        yield
        await registry.close_all()

    app = Starlette(
        routes=routes,
        middleware=build_middleware(config),
        exception_handlers={TransportError: transport_error_handler},
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.registry = registry
    app.state.endpoint = endpoint
    return app
