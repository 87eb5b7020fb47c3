"""Per-session streamable HTTP transport.

Bridges the engine's push-based ``send`` onto HTTP's request/response
model. An outbound message goes, in order of preference, to:

1. a pending responder - a synchronous POST waiting for its reply,
2. the attached SSE sink, if it is still open,
3. the outbound queue, replayed in order when a sink attaches.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum

from ..errors import RequestInFlightError, SessionClosedError
from ..protocol.classify import is_response
from ..protocol.types import JsonRpcMessage, JsonRpcModel, RequestId, to_wire
from .base import Transport
from .sse import SinkClosedError, SSESink

logger = logging.getLogger(__name__)


class TransportState(str, Enum):
    """Delivery state of a session, derived from responders and sink."""

    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    STREAM_ATTACHED = "stream_attached"


@dataclass
class CorrelationPolicy:
    """How synchronous POST requests are paired with engine output.

    match_by_id: Only a response carrying the request's id resolves it.
        When False, the oldest waiting request takes the next outbound
        message, whatever it is.
    max_in_flight: Concurrent synchronous requests allowed per session.
        None means unlimited.
    """

    match_by_id: bool = True
    max_in_flight: int | None = 1


class SessionTransport(Transport):
    """Transport for one HTTP session."""

    def __init__(self, session_id: str, policy: CorrelationPolicy | None = None) -> None:
        super().__init__()
        self._session_id = session_id
        self._policy = policy or CorrelationPolicy()
        self._queue: deque[JsonRpcMessage] = deque()
        self._pending: dict[str, asyncio.Future[JsonRpcMessage]] = {}
        self._sink: SSESink | None = None
        self._closed = False

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def policy(self) -> CorrelationPolicy:
        return self._policy

    @property
    def state(self) -> TransportState:
        """Current delivery state."""
        if self._pending:
            return TransportState.AWAITING_RESPONSE
        if self._sink is not None and not self._sink.closed:
            return TransportState.STREAM_ATTACHED
        return TransportState.IDLE

    @property
    def queued(self) -> list[JsonRpcMessage]:
        """Snapshot of messages waiting for a sink."""
        return list(self._queue)

    @property
    def sink(self) -> SSESink | None:
        return self._sink

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """No-op: HTTP requests drive this transport."""

    async def close(self) -> None:
        """Notify the engine and fail any waiting responders.

        The attached sink is left alone; ending the stream is up to the
        HTTP layer.
        """
        if self._closed:
            return
        self._closed = True
        for future in self._pending.values():
            if not future.done():
                future.set_exception(SessionClosedError(f"Session {self._session_id} closed"))
        self._pending.clear()
        self._notify_closed()

    # =========================================================================
    # Outbound
    # =========================================================================

    async def send(self, message: JsonRpcModel | JsonRpcMessage) -> None:
        """Deliver an outbound message from the engine."""
        data = to_wire(message)

        responder = self._take_responder(data)
        if responder is not None:
            responder.set_result(data)
            return

        if self._sink is not None:
            try:
                self._sink.send_message(data)
                return
            except SinkClosedError:
                logger.debug(f"Session {self._session_id}: sink closed, queuing instead")
                self._sink = None

        self._queue.append(data)

    def _take_responder(self, message: JsonRpcMessage) -> asyncio.Future[JsonRpcMessage] | None:
        """Pop the responder this message should resolve, if any."""
        if self._policy.match_by_id:
            if not is_response(message):
                return None
            future = self._pending.pop(_request_key(message["id"]), None)
            if future is None or future.done():
                return None
            return future

        while self._pending:
            request_id = next(iter(self._pending))
            future = self._pending.pop(request_id)
            if not future.done():
                return future
        return None

    # =========================================================================
    # Sink management
    # =========================================================================

    def attach_sink(self, sink: SSESink) -> None:
        """Bind a live sink and flush queued messages into it in order.

        A previously attached sink is replaced without being closed.
        """
        if self._sink is not None and self._sink is not sink:
            logger.debug(f"Session {self._session_id}: replacing attached sink")
        self._sink = sink

        flushed = 0
        while self._queue and not sink.closed:
            sink.send_message(self._queue.popleft())
            flushed += 1
        if flushed:
            logger.debug(f"Session {self._session_id}: flushed {flushed} queued message(s)")

    def detach_sink(self) -> SSESink | None:
        """Unbind and return the current sink."""
        sink, self._sink = self._sink, None
        return sink

    # =========================================================================
    # Inbound
    # =========================================================================

    async def deliver_inbound(self, message: JsonRpcMessage) -> None:
        """Forward a decoded message to the engine."""
        await self._dispatch(message)

    def install_pending_responder(
        self, request_id: RequestId
    ) -> asyncio.Future[JsonRpcMessage]:
        """Register a one-shot slot for the reply to a synchronous request.

        Raises:
            RequestInFlightError: The policy's in-flight limit is reached,
                or a request with the same id is already waiting.
        """
        limit = self._policy.max_in_flight
        if limit is not None and len(self._pending) >= limit:
            raise RequestInFlightError("A request is already in flight for this session")
        key = _request_key(request_id)
        if key in self._pending:
            raise RequestInFlightError(f"Request {request_id!r} is already in flight")

        future: asyncio.Future[JsonRpcMessage] = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        return future

    def discard_pending_responder(
        self, request_id: RequestId, future: asyncio.Future[JsonRpcMessage]
    ) -> None:
        """Drop a responder that will no longer be awaited.

        The slot is only freed while it still holds ``future``; a later
        request that reused the id keeps its own responder.
        """
        key = _request_key(request_id)
        if self._pending.get(key) is future:
            del self._pending[key]
        if not future.done():
            future.cancel()


def _request_key(request_id: object) -> str:
    # 1, "1" and true are distinct ids; dict keys would conflate 1 and true
    return json.dumps(request_id, sort_keys=True)
