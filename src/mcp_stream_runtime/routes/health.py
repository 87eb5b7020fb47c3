"""Health check endpoint."""

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..registry import SessionRegistry


def health_routes(registry: SessionRegistry) -> list[Route]:
    """Build the health route for a registry."""

    async def health_check(request: Request) -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse({"status": "ok", "sessions": len(registry)})

    return [Route("/health", health_check, methods=["GET"])]
