"""Reference protocol engine.

Dispatches inbound JSON-RPC requests by method name and answers through
the transport it is connected to. One instance serves one session.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .. import __version__
from ..protocol.classify import MessageKind, classify_message
from ..protocol.types import (
    INITIALIZE_METHOD,
    PROTOCOL_VERSION,
    JsonRpcError,
    JsonRpcErrorCode,
    JsonRpcMessage,
    JsonRpcNotification,
    JsonRpcResponse,
)
from ..transport.base import Transport
from .errors import JsonRpcProtocolError
from .tools import ToolRegistry

logger = logging.getLogger(__name__)

SERVER_NAME = "mcp-stream-runtime"

# Type aliases
RequestHandler = Callable[[dict[str, Any]], Awaitable[Any]]
NotificationHandler = Callable[[dict[str, Any]], Awaitable[None]]


class RpcServer:
    """Method-dispatching engine bound to a single transport."""

    def __init__(
        self,
        name: str = SERVER_NAME,
        version: str = __version__,
        tools: ToolRegistry | None = None,
    ) -> None:
        self.name = name
        self.version = version
        self.tools = tools or ToolRegistry()
        self._transport: Transport | None = None
        self._initialized = False
        self._client_info: dict[str, Any] | None = None
        self._request_handlers: dict[str, RequestHandler] = {
            INITIALIZE_METHOD: self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }
        self._notification_handlers: dict[str, NotificationHandler] = {
            "notifications/initialized": self._on_initialized,
        }

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def client_info(self) -> dict[str, Any] | None:
        return self._client_info

    # =========================================================================
    # Connection
    # =========================================================================

    async def connect(self, transport: Transport) -> None:
        """Bind to a transport and start it."""
        self._transport = transport
        transport.on_message(self.handle_message)
        transport.on_close(self._on_close)
        transport.on_error(self._on_error)
        await transport.start()

    async def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Push a notification to the client."""
        await self._send(JsonRpcNotification(method=method, params=params))

    async def _send(self, message: JsonRpcNotification | JsonRpcResponse) -> None:
        if self._transport is None:
            raise RuntimeError("Server is not connected to a transport")
        await self._transport.send(message)

    def _on_close(self) -> None:
        logger.debug(f"{self.name}: transport closed")
        self._transport = None

    def _on_error(self, error: Exception) -> None:
        logger.error(f"{self.name}: transport error: {error}")

    # =========================================================================
    # Handler registration
    # =========================================================================

    def request_handler(self, method: str) -> Callable[[RequestHandler], RequestHandler]:
        """Register a handler for a request method."""

        def decorator(handler: RequestHandler) -> RequestHandler:
            self._request_handlers[method] = handler
            return handler

        return decorator

    def notification_handler(
        self, method: str
    ) -> Callable[[NotificationHandler], NotificationHandler]:
        """Register a handler for a notification method."""

        def decorator(handler: NotificationHandler) -> NotificationHandler:
            self._notification_handlers[method] = handler
            return handler

        return decorator

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def handle_message(self, message: JsonRpcMessage) -> None:
        """Process one inbound message."""
        kind = classify_message(message)
        if kind is MessageKind.INITIALIZE:
            kind = MessageKind.REQUEST if "id" in message else MessageKind.NOTIFICATION

        if kind is MessageKind.REQUEST:
            await self._send(await self._handle_request(message))
        elif kind is MessageKind.NOTIFICATION:
            await self._handle_notification(message)
        elif kind is MessageKind.RESPONSE:
            logger.debug(f"Ignoring response for id {message.get('id')!r}")
        else:
            await self._send(
                JsonRpcResponse(
                    id=message.get("id") if isinstance(message, dict) else None,
                    error=JsonRpcError(
                        code=JsonRpcErrorCode.INVALID_REQUEST,
                        message="Invalid JSON-RPC message",
                    ),
                )
            )

    async def _handle_request(self, message: JsonRpcMessage) -> JsonRpcResponse:
        method = message["method"]
        request_id = message["id"]
        params = message.get("params") or {}
        if not isinstance(params, dict):
            return JsonRpcResponse(
                id=request_id,
                error=JsonRpcError(
                    code=JsonRpcErrorCode.INVALID_PARAMS,
                    message="Params must be an object",
                ),
            )

        handler = self._request_handlers.get(method)
        if handler is None:
            return JsonRpcResponse(
                id=request_id,
                error=JsonRpcError(
                    code=JsonRpcErrorCode.METHOD_NOT_FOUND,
                    message=f"Method not found: {method}",
                ),
            )

        try:
            result = await handler(params)
            return JsonRpcResponse(id=request_id, result=result)
        except JsonRpcProtocolError as e:
            return JsonRpcResponse(
                id=request_id,
                error=JsonRpcError(code=e.code, message=e.message, data=e.data),
            )
        except Exception as e:
            logger.exception(f"Error handling request {method}: {e}")
            return JsonRpcResponse(
                id=request_id,
                error=JsonRpcError(code=JsonRpcErrorCode.INTERNAL_ERROR, message=str(e)),
            )

    async def _handle_notification(self, message: JsonRpcMessage) -> None:
        method = message["method"]
        handler = self._notification_handlers.get(method)
        if handler is None:
            logger.debug(f"No handler for notification {method}")
            return
        try:
            await handler(message.get("params") or {})
        except Exception as e:
            logger.exception(f"Error handling notification {method}: {e}")

    # =========================================================================
    # Built-in methods
    # =========================================================================

    async def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        self._client_info = params.get("clientInfo")
        return {
            "protocolVersion": params.get("protocolVersion", PROTOCOL_VERSION),
            "capabilities": {"tools": {}},
            "serverInfo": {"name": self.name, "version": self.version},
        }

    async def _on_initialized(self, params: dict[str, Any]) -> None:
        self._initialized = True

    async def _ping(self, params: dict[str, Any]) -> dict[str, Any]:
        return {}

    async def _list_tools(self, params: dict[str, Any]) -> dict[str, Any]:
        return self.tools.list_tools()

    async def _call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str):
            raise JsonRpcProtocolError(JsonRpcErrorCode.INVALID_PARAMS, "Missing tool name")
        return await self.tools.call_tool(name, params.get("arguments"))


def create_server(tools: ToolRegistry | None = None) -> RpcServer:
    """Create the default engine for one session."""
    return RpcServer(tools=tools)
