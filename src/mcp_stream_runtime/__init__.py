"""MCP Stream Runtime.

Streamable HTTP transport for JSON-RPC: synchronous JSON replies and
Server-Sent Events, multiplexed across client sessions.
"""

__version__ = "0.1.0"

from .app import create_app  # noqa: E402
from .config import ServerConfig  # noqa: E402
from .registry import Session, SessionRegistry  # noqa: E402

__all__ = [
    "__version__",
    "ServerConfig",
    "Session",
    "SessionRegistry",
    "create_app",
]
