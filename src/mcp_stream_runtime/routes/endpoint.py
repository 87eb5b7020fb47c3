"""Streamable HTTP endpoint.

One path, three methods:
- GET    - attach an SSE stream to an existing session
- POST   - submit one JSON-RPC message (initialize creates the session)
- DELETE - terminate a session

POST replies depend on the message:
- initialize without a session header: SSE stream carrying the new session id
- notification or response: 202, empty body
- request: 200 with the engine's JSON reply
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from ..config import ServerConfig
from ..errors import (
    BadRequestError,
    InternalError,
    ParseError,
    SessionNotFoundError,
    TransportError,
)
from ..protocol.classify import MessageKind, classify_message
from ..protocol.types import JsonRpcMessage, error_envelope
from ..registry import Session, SessionRegistry
from ..transport.base import ProtocolEngine
from ..transport.session import SessionTransport
from ..transport.sse import SSESink, priming_event

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], ProtocolEngine]


class StreamableHttpEndpoint:
    """HTTP handlers bound to an injected registry and engine factory."""

    def __init__(
        self,
        config: ServerConfig,
        registry: SessionRegistry,
        engine_factory: EngineFactory,
    ) -> None:
        self.config = config
        self.registry = registry
        self.engine_factory = engine_factory

    @property
    def routes(self) -> list[Route]:
        return [
            Route(self.config.endpoint_path, self.handle_get, methods=["GET"]),
            Route(self.config.endpoint_path, self.handle_post, methods=["POST"]),
            Route(self.config.endpoint_path, self.handle_delete, methods=["DELETE"]),
        ]

    # =========================================================================
    # GET: stream-attach
    # =========================================================================

    async def handle_get(self, request: Request) -> Response:
        """Open an SSE stream for a known session."""
        session = self._require_session(request)

        sink = SSESink()
        sink.write(priming_event())
        session.transport.attach_sink(sink)
        logger.debug(f"Session {session.session_id}: stream attached")
        return sink.response()

    # =========================================================================
    # POST: message-submit
    # =========================================================================

    async def handle_post(self, request: Request) -> Response:
        """Accept one JSON-RPC message."""
        protocol_version = request.headers.get(self.config.protocol_version_header)
        if protocol_version:
            # Advisory only; no version negotiation
            logger.debug(f"Client protocol version: {protocol_version}")

        message = await self._read_message(request)
        kind = classify_message(message)
        session_id = request.headers.get(self.config.session_header)

        if not session_id:
            if kind is not MessageKind.INITIALIZE:
                raise BadRequestError(f"Missing {self.config.session_header} header")
            return await self._initialize_session(message)

        session = self.registry.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        if kind is MessageKind.INITIALIZE:
            # Re-initialize on a live session is handled like any other message
            kind = MessageKind.REQUEST if "id" in message else MessageKind.NOTIFICATION

        if kind in (MessageKind.NOTIFICATION, MessageKind.RESPONSE):
            await session.transport.deliver_inbound(message)
            return Response(status_code=202)

        if kind is MessageKind.REQUEST:
            reply = await self._call(session.transport, message)
            return JSONResponse(reply)

        raise BadRequestError("Invalid JSON-RPC message")

    async def _read_message(self, request: Request) -> Any:
        body = await request.body()
        try:
            return json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(f"Parse error: {e}") from e

    async def _initialize_session(self, message: JsonRpcMessage) -> Response:
        """Create a session and answer with its SSE stream."""
        session = await self.open_session()

        sink = SSESink()
        sink.write(priming_event())
        session.transport.attach_sink(sink)

        try:
            await session.transport.deliver_inbound(message)
        except Exception as e:
            logger.exception(f"Session {session.session_id}: initialize failed: {e}")
            await self.close_session(session.session_id)
            raise InternalError("Internal Server Error") from e

        return sink.response(headers={self.config.session_header: session.session_id})

    async def _call(self, transport: SessionTransport, message: JsonRpcMessage) -> JsonRpcMessage:
        """Deliver a request and wait for the reply the transport routes back."""
        request_id = message["id"]
        future = transport.install_pending_responder(request_id)
        try:
            await transport.deliver_inbound(message)
            return await future
        except Exception as e:
            logger.exception(f"Session {transport.session_id}: error handling request: {e}")
            raise InternalError("Internal Server Error") from e
        finally:
            transport.discard_pending_responder(request_id, future)

    # =========================================================================
    # DELETE: terminate
    # =========================================================================

    async def handle_delete(self, request: Request) -> Response:
        """Terminate a session and end its stream."""
        session = self._require_session(request)
        await self.close_session(session.session_id)
        return Response(status_code=204)

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    async def open_session(self) -> Session:
        """Create, connect and register a new session."""
        session_id = str(uuid.uuid4())
        transport = SessionTransport(session_id, policy=self.config.correlation_policy)
        engine = self.engine_factory()
        await engine.connect(transport)

        session = Session(session_id=session_id, engine=engine, transport=transport)
        self.registry.add(session)
        return session

    async def close_session(self, session_id: str) -> None:
        """Unregister a session, close its transport and end its stream."""
        session = self.registry.remove(session_id)
        if session is None:
            return
        await session.transport.close()
        sink = session.transport.detach_sink()
        if sink is not None:
            sink.close()

    def _require_session(self, request: Request) -> Session:
        session_id = request.headers.get(self.config.session_header)
        if not session_id:
            raise BadRequestError(f"Missing {self.config.session_header} header")
        session = self.registry.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session


async def transport_error_handler(request: Request, exc: TransportError) -> Response:
    """Render ``TransportError`` as plain text or a JSON-RPC envelope."""
    if exc.jsonrpc_code is not None:
        return JSONResponse(
            error_envelope(exc.jsonrpc_code, exc.message),
            status_code=exc.status_code,
        )
    return PlainTextResponse(exc.message, status_code=exc.status_code)
