"""Transport-level errors.

Each error maps to one HTTP status. Errors with a ``jsonrpc_code`` are
rendered as a JSON-RPC error envelope, the rest as plain text.

Protocol-level failures (unknown method, failing tool) never surface here:
the engine turns them into ordinary JSON-RPC responses.
"""

from __future__ import annotations

from .protocol.types import JsonRpcErrorCode


class TransportError(Exception):
    """Base class for errors reported as an HTTP status."""

    status_code: int = 500
    jsonrpc_code: int | None = None

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(TransportError):
    """Malformed message or missing session identifier."""

    status_code = 400


class ParseError(BadRequestError):
    """Request body is not valid JSON."""

    jsonrpc_code = JsonRpcErrorCode.PARSE_ERROR


class UnauthorizedError(TransportError):
    """Missing or wrong bearer key."""

    status_code = 401
    jsonrpc_code = JsonRpcErrorCode.SERVER_ERROR


class ForbiddenError(TransportError):
    """Origin not on the allow-list."""

    status_code = 403
    jsonrpc_code = JsonRpcErrorCode.SERVER_ERROR


class SessionNotFoundError(TransportError):
    """Session identifier is not registered. Clients must re-initialize."""

    status_code = 404

    def __init__(self, session_id: str) -> None:
        super().__init__("Session not found")
        self.session_id = session_id


class RequestInFlightError(TransportError):
    """The session already has as many synchronous requests as it allows."""

    status_code = 409


class InternalError(TransportError):
    """Failure while waiting for the engine to answer."""

    status_code = 500


class SessionClosedError(Exception):
    """Raised into responders still waiting when a session closes."""
