"""JSON-RPC protocol types and message classification."""

from .classify import (
    MessageKind,
    classify_message,
    is_initialize_request,
    is_notification,
    is_request,
    is_response,
)
from .types import (
    INITIALIZE_METHOD,
    PROTOCOL_VERSION,
    JsonRpcError,
    JsonRpcErrorCode,
    JsonRpcMessage,
    JsonRpcModel,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    RequestId,
    error_envelope,
    to_wire,
)

__all__ = [
    # Classification
    "MessageKind",
    "classify_message",
    "is_initialize_request",
    "is_notification",
    "is_request",
    "is_response",
    # Wire types
    "INITIALIZE_METHOD",
    "PROTOCOL_VERSION",
    "JsonRpcError",
    "JsonRpcErrorCode",
    "JsonRpcMessage",
    "JsonRpcModel",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "RequestId",
    "error_envelope",
    "to_wire",
]
