"""Stdio transport.

Runs one implicit session over stdin/stdout:
- Reads one JSON-RPC message per line from stdin
- Writes one JSON-RPC message per line to stdout
- Diagnostics go to stderr through logging, never to stdout
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sys
from typing import TextIO

from ..protocol.types import JsonRpcErrorCode, JsonRpcMessage, JsonRpcModel, error_envelope, to_wire
from .base import Transport

logger = logging.getLogger(__name__)


class StdioTransport(Transport):
    """Transport over newline-delimited JSON on stdin/stdout.

    Args:
        reader: Stream to read from. Defaults to a reader on ``sys.stdin``.
        stdout: Text stream to write to. Defaults to ``sys.stdout``.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        super().__init__()
        self._reader = reader
        self._stdout = stdout or sys.stdout
        self._write_lock = asyncio.Lock()
        self._read_task: asyncio.Task[None] | None = None
        self._running = False

    async def start(self) -> None:
        """Start reading from stdin in the background."""
        if self._reader is None:
            self._reader = await _connect_stdin()
        self._running = True
        self._read_task = asyncio.create_task(self._read_loop())

    async def wait_closed(self) -> None:
        """Block until stdin reaches EOF or the transport is closed."""
        if self._read_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._read_task

    async def close(self) -> None:
        """Stop reading and notify the engine."""
        if not self._running:
            return
        self._running = False
        current = asyncio.current_task()
        if self._read_task is not None and self._read_task is not current:
            self._read_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._read_task
        self._notify_closed()

    async def send(self, message: JsonRpcModel | JsonRpcMessage) -> None:
        """Write a message as one line on stdout."""
        line = json.dumps(to_wire(message), separators=(",", ":")) + "\n"
        async with self._write_lock:
            self._stdout.write(line)
            self._stdout.flush()

    async def _read_loop(self) -> None:
        assert self._reader is not None
        while self._running:
            line = await self._reader.readline()
            if not line:
                logger.info("stdin closed, shutting down")
                break

            try:
                data = line.decode("utf-8").strip()
                if not data:
                    continue
                message = json.loads(data)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.warning(f"Invalid JSON on stdin: {e}")
                await self.send(error_envelope(JsonRpcErrorCode.PARSE_ERROR, f"Parse error: {e}"))
                continue

            try:
                await self._dispatch(message)
            except Exception as e:
                logger.exception(f"Error handling message: {e}")

        await self.close()


async def _connect_stdin() -> asyncio.StreamReader:
    """Wrap ``sys.stdin`` in a non-blocking stream reader."""
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    loop = asyncio.get_running_loop()
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader
