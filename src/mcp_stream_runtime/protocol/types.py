"""JSON-RPC 2.0 wire types.

Messages travel as plain decoded JSON (``dict``) through the transports so
that unknown fields survive untouched. These models are used where the
server builds messages itself.

Note: Field names use camelCase where the protocol does.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

# Reserved method that bootstraps a new session
INITIALIZE_METHOD = "initialize"

# Protocol revision advertised by the reference engine
PROTOCOL_VERSION = "2025-06-18"

# Any JSON value the client chose; replies echo it back unchanged
RequestId = Any

# A decoded protocol message as it appears on the wire
JsonRpcMessage = dict[str, Any]


class JsonRpcModel(BaseModel):
    """Base model for JSON-RPC envelopes."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_wire(self) -> JsonRpcMessage:
        """Encode as a wire dict, dropping absent optional members."""
        return self.model_dump(exclude_none=True, by_alias=True)


class JsonRpcRequest(JsonRpcModel):
    """JSON-RPC 2.0 request."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId
    method: str
    params: dict[str, Any] | None = None


class JsonRpcNotification(JsonRpcModel):
    """JSON-RPC 2.0 notification (no response expected)."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: dict[str, Any] | None = None


class JsonRpcError(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any | None = None


class JsonRpcResponse(JsonRpcModel):
    """JSON-RPC 2.0 response."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId = None
    result: Any | None = None
    error: JsonRpcError | None = None

    def to_wire(self) -> JsonRpcMessage:
        # ``id`` stays even when null, and a success response always carries ``result``
        data: JsonRpcMessage = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error.model_dump(exclude_none=True)
        else:
            data["result"] = self.result
        return data


# Standard JSON-RPC error codes
class JsonRpcErrorCode:
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Implementation-defined server errors
    SERVER_ERROR = -32000


def to_wire(message: JsonRpcModel | JsonRpcMessage) -> JsonRpcMessage:
    """Normalize a model or an already-decoded dict to its wire form."""
    if isinstance(message, JsonRpcModel):
        return message.to_wire()
    return message


def error_envelope(
    code: int,
    message: str,
    request_id: RequestId = None,
    data: Any | None = None,
) -> JsonRpcMessage:
    """Create a JSON-RPC error response as a wire dict."""
    return JsonRpcResponse(
        id=request_id,
        error=JsonRpcError(code=code, message=message, data=data),
    ).to_wire()
