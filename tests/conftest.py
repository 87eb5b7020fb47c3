"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest
from starlette.requests import Request

from mcp_stream_runtime.config import ServerConfig
from mcp_stream_runtime.registry import SessionRegistry
from mcp_stream_runtime.routes.endpoint import StreamableHttpEndpoint
from mcp_stream_runtime.transport.base import Transport


class RecordingEngine:
    """Engine stub that records inbound messages.

    Requests are answered with ``{"echo": <method>}`` unless ``auto_reply``
    is off. Messages listed in ``before_reply`` are sent ahead of each reply.
    """

    def __init__(self, auto_reply: bool = True) -> None:
        self.auto_reply = auto_reply
        self.before_reply: list[dict[str, Any]] = []
        self.received: list[dict[str, Any]] = []
        self.transport: Transport | None = None
        self.closed = False

    async def connect(self, transport: Transport) -> None:
        self.transport = transport
        transport.on_message(self.handle)
        transport.on_close(self._on_close)
        await transport.start()

    async def handle(self, message: dict[str, Any]) -> None:
        self.received.append(message)
        if not self.auto_reply or "method" not in message or "id" not in message:
            return
        assert self.transport is not None
        for extra in self.before_reply:
            await self.transport.send(extra)
        await self.transport.send(
            {"jsonrpc": "2.0", "id": message["id"], "result": {"echo": message["method"]}}
        )

    def _on_close(self) -> None:
        self.closed = True


@pytest.fixture
def config() -> ServerConfig:
    return ServerConfig()


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def engines() -> list[RecordingEngine]:
    """Every engine created by the ``endpoint`` fixture, in order."""
    return []


@pytest.fixture
def endpoint(
    config: ServerConfig, registry: SessionRegistry, engines: list[RecordingEngine]
) -> StreamableHttpEndpoint:
    def factory() -> RecordingEngine:
        engine = RecordingEngine()
        engines.append(engine)
        return engine

    return StreamableHttpEndpoint(config, registry, factory)


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Build real Starlette requests for calling handlers directly."""

    def _make(
        method: str,
        body: Any = None,
        headers: dict[str, str] | None = None,
        raw_body: bytes | None = None,
    ) -> Request:
        if raw_body is None:
            raw_body = b"" if body is None else json.dumps(body).encode("utf-8")
        raw_headers = [
            (key.lower().encode("latin-1"), value.encode("latin-1"))
            for key, value in (headers or {}).items()
        ]
        scope = {
            "type": "http",
            "method": method,
            "path": "/mcp",
            "query_string": b"",
            "headers": raw_headers,
        }

        async def receive() -> dict[str, Any]:
            return {"type": "http.request", "body": raw_body, "more_body": False}

        return Request(scope, receive)

    return _make
