"""Transport abstraction base classes.

A transport moves decoded JSON-RPC messages between a peer and a
protocol engine. The engine registers callbacks with ``on_message``,
``on_close`` and ``on_error``, then pushes outbound messages with ``send``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from ..protocol.types import JsonRpcMessage, JsonRpcModel

logger = logging.getLogger(__name__)

# Type aliases
MessageHandler = Callable[[JsonRpcMessage], Awaitable[None]]
CloseHandler = Callable[[], None]
ErrorHandler = Callable[[Exception], None]


class Transport(ABC):
    """Abstract base class for engine-facing transports."""

    def __init__(self) -> None:
        self._message_handler: MessageHandler | None = None
        self._close_handler: CloseHandler | None = None
        self._error_handler: ErrorHandler | None = None

    def on_message(self, handler: MessageHandler) -> None:
        """Register the handler for inbound messages."""
        self._message_handler = handler

    def on_close(self, handler: CloseHandler) -> None:
        """Register a callback run when the transport closes."""
        self._close_handler = handler

    def on_error(self, handler: ErrorHandler) -> None:
        """Register a callback for errors raised while handling messages."""
        self._error_handler = handler

    @abstractmethod
    async def start(self) -> None:
        """Start the transport."""

    @abstractmethod
    async def send(self, message: JsonRpcModel | JsonRpcMessage) -> None:
        """Deliver an outbound message to the peer."""

    @abstractmethod
    async def close(self) -> None:
        """Close the transport."""

    async def _dispatch(self, message: JsonRpcMessage) -> None:
        """Hand an inbound message to the registered handler."""
        if self._message_handler is None:
            logger.warning("No message handler registered, dropping message")
            return
        try:
            await self._message_handler(message)
        except Exception as e:
            self._report_error(e)
            raise

    def _report_error(self, error: Exception) -> None:
        if self._error_handler is not None:
            self._error_handler(error)

    def _notify_closed(self) -> None:
        if self._close_handler is not None:
            self._close_handler()


@runtime_checkable
class ProtocolEngine(Protocol):
    """Protocol for the component that interprets messages.

    Implementations bind themselves to a transport in ``connect`` and
    reply through ``transport.send``.
    """

    async def connect(self, transport: Transport) -> None:
        """Attach to a transport and start it."""
        ...
