"""Security middleware.

Origin validation runs before anything else: a request carrying an
``Origin`` header that is not on the allow-list is rejected with 403.
An empty allow-list accepts every origin. Bearer authentication is only
enforced when an API key is configured.
"""

from __future__ import annotations

import logging
import secrets

from starlette.datastructures import Headers
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from .config import ServerConfig
from .errors import ForbiddenError, TransportError, UnauthorizedError
from .protocol.types import error_envelope

logger = logging.getLogger(__name__)


def error_response(error: TransportError) -> JSONResponse:
    """Render a transport error as a JSON-RPC error envelope."""
    return JSONResponse(
        error_envelope(error.jsonrpc_code or 0, error.message),
        status_code=error.status_code,
    )


class OriginGuardMiddleware:
    """Reject disallowed origins and, optionally, unauthenticated callers."""

    def __init__(
        self,
        app: ASGIApp,
        allowed_origins: list[str] | None = None,
        api_key: str | None = None,
    ) -> None:
        self.app = app
        self.allowed_origins = allowed_origins or []
        self.api_key = api_key

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        error = self._check_origin(headers.get("origin"))
        # CORS preflights never carry credentials
        if error is None and scope["method"] != "OPTIONS":
            error = self._check_auth(headers.get("authorization"))
        if error is not None:
            await error_response(error)(scope, receive, send)
            return

        await self.app(scope, receive, send)

    def _check_origin(self, origin: str | None) -> TransportError | None:
        if origin and self.allowed_origins and origin not in self.allowed_origins:
            logger.warning(f"Rejected request from origin {origin}")
            return ForbiddenError("Forbidden: Invalid Origin")
        return None

    def _check_auth(self, authorization: str | None) -> TransportError | None:
        if not self.api_key:
            return None
        scheme, _, token = (authorization or "").partition(" ")
        if scheme != "Bearer" or not secrets.compare_digest(
            token.encode("utf-8"), self.api_key.encode("utf-8")
        ):
            return UnauthorizedError("Unauthorized")
        return None


def build_middleware(config: ServerConfig) -> list[Middleware]:
    """Middleware stack: origin guard outermost, then CORS."""
    return [
        Middleware(
            OriginGuardMiddleware,
            allowed_origins=config.allowed_origins,
            api_key=config.api_key,
        ),
        Middleware(
            CORSMiddleware,
            allow_origins=config.allowed_origins or ["*"],
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=[
                "Content-Type",
                "Authorization",
                config.session_header,
                config.protocol_version_header,
                "Last-Event-ID",
            ],
            expose_headers=[config.session_header, config.protocol_version_header],
        ),
    ]
