"""HTTP routes."""

from .endpoint import EngineFactory, StreamableHttpEndpoint, transport_error_handler
from .health import health_routes

__all__ = [
    "EngineFactory",
    "StreamableHttpEndpoint",
    "health_routes",
    "transport_error_handler",
]
