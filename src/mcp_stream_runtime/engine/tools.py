"""Tool registry for the reference engine.

Tools declare their arguments as a pydantic model; the JSON schema
published by ``tools/list`` is generated from it.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

from .errors import (
    ConfigurationError,
    ToolValidationError,
    format_error_for_user,
    format_validation_error,
)

logger = logging.getLogger(__name__)

ToolResult = str | dict[str, Any] | list[Any]
ToolHandler = Callable[[Any, dict[str, Any]], Awaitable[ToolResult]]


class NoArguments(BaseModel):
    """Argument model for tools that take none."""


@dataclass
class Tool:
    """A callable tool exposed through ``tools/call``."""

    name: str
    handler: ToolHandler
    description: str = ""
    arguments: type[BaseModel] = NoArguments

    def describe(self) -> dict[str, Any]:
        """Entry for the ``tools/list`` result."""
        return {
            "name": self.name,
            "description": self.description or f"Tool: {self.name}",
            "inputSchema": self.arguments.model_json_schema(),
        }


@dataclass
class ToolRegistry:
    """Named tools plus a shared context passed to every handler."""

    tools: dict[str, Tool] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)

    def register(self, tool: Tool) -> None:
        if tool.name in self.tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self.tools[tool.name] = tool

    def tool(
        self,
        name: str,
        description: str = "",
        arguments: type[BaseModel] = NoArguments,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator form of ``register``."""

        def decorator(handler: ToolHandler) -> ToolHandler:
            self.register(
                Tool(name=name, handler=handler, description=description, arguments=arguments)
            )
            return handler

        return decorator

    def list_tools(self) -> dict[str, Any]:
        return {"tools": [tool.describe() for tool in self.tools.values()]}

    async def call_tool(self, name: str, raw_arguments: dict[str, Any] | None) -> dict[str, Any]:
        """Run a tool and wrap its output as a ``tools/call`` result.

        Unknown tools raise ``ConfigurationError`` (a protocol error).
        Argument and handler failures are returned with ``isError`` set.
        """
        tool = self.tools.get(name)
        if tool is None:
            available = ", ".join(self.tools) or "none"
            raise ConfigurationError(f"Tool not found: {name}. Available tools: {available}")

        try:
            try:
                args = tool.arguments.model_validate(raw_arguments or {})
            except ValidationError as e:
                raise ToolValidationError(format_validation_error(e)) from e

            result = await tool.handler(args, self.context)
        except Exception as e:
            logger.warning(f"Tool {name} failed: {e}")
            return {
                "content": [{"type": "text", "text": format_error_for_user(e)}],
                "isError": True,
            }

        text = result if isinstance(result, str) else json.dumps(result, indent=2)
        return {"content": [{"type": "text", "text": text}]}
