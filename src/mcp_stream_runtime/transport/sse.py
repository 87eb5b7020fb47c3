"""Server-Sent Events framing and the streaming sink.

Every event uses the same frame:

    id: <uuid>\\n
    event: message\\n
    data: <json or empty>\\n
    \\n
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import AsyncIterator, Mapping
from typing import Any

from starlette.responses import StreamingResponse

logger = logging.getLogger(__name__)

SSE_MEDIA_TYPE = "text/event-stream"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


class SinkClosedError(Exception):
    """Raised when writing to a sink whose client has gone away."""


def format_sse_event(message: Any | None, event_id: str | None = None) -> str:
    """Frame one message as an SSE event.

    ``None`` produces an event with empty data.
    """
    event_id = event_id or str(uuid.uuid4())
    data = "" if message is None else json.dumps(message, separators=(",", ":"))
    return f"id: {event_id}\nevent: message\ndata: {data}\n\n"


def priming_event() -> str:
    """Empty event sent first so intermediaries flush the stream headers."""
    return format_sse_event(None)


class SSESink:
    """Writable SSE destination backed by a queue.

    The HTTP layer hands ``stream()`` to a ``StreamingResponse``; writers
    call ``write()`` from the event loop without awaiting. When the client
    disconnects, Starlette stops the generator and the sink reports
    ``closed``.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        """Check if the sink can no longer deliver events."""
        return self._closed

    def write(self, chunk: str) -> None:
        """Queue an already framed chunk for the client."""
        if self._closed:
            raise SinkClosedError("SSE sink is closed")
        self._queue.put_nowait(chunk)

    def send_message(self, message: Any) -> None:
        """Frame and queue a protocol message."""
        self.write(format_sse_event(message))

    def close(self) -> None:
        """End the stream after already queued chunks are sent."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    async def stream(self) -> AsyncIterator[str]:
        """Yield queued chunks until closed."""
        try:
            while True:
                chunk = await self._queue.get()
                if chunk is None:
                    break
                yield chunk
        finally:
            if not self._closed:
                logger.debug("SSE client disconnected")
            self._closed = True

    def response(self, headers: Mapping[str, str] | None = None) -> StreamingResponse:
        """Create the streaming response that drains this sink."""
        return StreamingResponse(
            self.stream(),
            media_type=SSE_MEDIA_TYPE,
            headers={**SSE_HEADERS, **(headers or {})},
        )
