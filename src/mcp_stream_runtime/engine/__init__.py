"""Reference protocol engine: method dispatch and tools."""

from .errors import (
    ConfigurationError,
    JsonRpcProtocolError,
    ToolError,
    ToolValidationError,
    format_error_for_user,
)
from .server import SERVER_NAME, RpcServer, create_server
from .tools import NoArguments, Tool, ToolRegistry

__all__ = [
    "SERVER_NAME",
    "ConfigurationError",
    "JsonRpcProtocolError",
    "NoArguments",
    "RpcServer",
    "Tool",
    "ToolError",
    "ToolRegistry",
    "ToolValidationError",
    "create_server",
    "format_error_for_user",
]
