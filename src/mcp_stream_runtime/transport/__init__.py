"""Transport layer.

Moves JSON-RPC messages between clients and protocol engines:
- SessionTransport - streamable HTTP, one per session (SSE or synchronous JSON)
- StdioTransport - newline-delimited JSON, single implicit session
"""

from .base import CloseHandler, ErrorHandler, MessageHandler, ProtocolEngine, Transport
from .session import CorrelationPolicy, SessionTransport, TransportState
from .sse import SSE_HEADERS, SSE_MEDIA_TYPE, SinkClosedError, SSESink, format_sse_event, priming_event
from .stdio import StdioTransport

__all__ = [
    # Base abstractions
    "CloseHandler",
    "ErrorHandler",
    "MessageHandler",
    "ProtocolEngine",
    "Transport",
    # Streamable HTTP
    "CorrelationPolicy",
    "SessionTransport",
    "TransportState",
    # SSE
    "SSE_HEADERS",
    "SSE_MEDIA_TYPE",
    "SSESink",
    "SinkClosedError",
    "format_sse_event",
    "priming_event",
    # stdio
    "StdioTransport",
]
