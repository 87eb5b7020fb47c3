"""Engine errors.

These never become HTTP errors. ``JsonRpcProtocolError`` is answered with a
JSON-RPC error response; tool errors are reported in-band in a successful
``tools/call`` result with ``isError`` set.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ..protocol.types import JsonRpcErrorCode


class JsonRpcProtocolError(Exception):
    """Exception for JSON-RPC protocol errors."""

    def __init__(
        self,
        code: int,
        message: str,
        data: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


class ConfigurationError(JsonRpcProtocolError):
    """Server-side misconfiguration, such as calling an unregistered tool."""

    def __init__(self, message: str) -> None:
        super().__init__(JsonRpcErrorCode.INVALID_PARAMS, message)


class ToolError(Exception):
    """Failure raised by a tool handler."""


class ToolValidationError(ToolError):
    """Tool arguments did not match the tool's schema."""


def format_validation_error(error: ValidationError) -> str:
    """Summarize pydantic errors as ``path: message`` pairs."""
    details = ", ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
    )
    return f"Invalid arguments: {details}"


def format_error_for_user(error: BaseException) -> str:
    """Render an exception as text suitable for a tool result."""
    if isinstance(error, ToolValidationError):
        return f"Validation error: {error}"
    if isinstance(error, ToolError):
        return f"Tool error: {error}"
    if isinstance(error, JsonRpcProtocolError):
        return f"Configuration error: {error.message}"
    return f"Unexpected error: {error}"
