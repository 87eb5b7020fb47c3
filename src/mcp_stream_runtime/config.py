"""Server configuration.

Values come from environment variables so that the uvicorn app factory,
which is called without arguments, sees the same settings as the CLI.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .transport.session import CorrelationPolicy

TRUE_VALUES = ("1", "true", "yes", "on")
UNLIMITED_VALUES = ("", "0", "none", "unlimited")


def parse_origins(value: str | None) -> list[str]:
    """Split a comma-separated origin list, ignoring blanks."""
    if not value:
        return []
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@dataclass
class ServerConfig:
    """HTTP transport configuration."""

    # Binding
    host: str = "127.0.0.1"
    port: int = 3000
    endpoint_path: str = "/mcp"

    # Security (empty allow-list accepts every origin)
    allowed_origins: list[str] = field(default_factory=list)
    api_key: str | None = None

    # Wire headers
    session_header: str = "MCP-Session-Id"
    protocol_version_header: str = "MCP-Protocol-Version"

    # Synchronous request correlation
    match_responses_by_id: bool = True
    max_in_flight: int | None = 1

    @property
    def correlation_policy(self) -> CorrelationPolicy:
        return CorrelationPolicy(
            match_by_id=self.match_responses_by_id,
            max_in_flight=self.max_in_flight,
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServerConfig:
        """Build a config from environment variables.

        Raises:
            ValueError: A numeric variable does not parse.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        max_in_flight_raw = env.get("MCP_MAX_IN_FLIGHT")
        if max_in_flight_raw is None:
            max_in_flight = defaults.max_in_flight
        elif max_in_flight_raw.strip().lower() in UNLIMITED_VALUES:
            max_in_flight = None
        else:
            max_in_flight = int(max_in_flight_raw)

        match_raw = env.get("MCP_MATCH_RESPONSES_BY_ID")
        match_by_id = (
            defaults.match_responses_by_id
            if match_raw is None
            else match_raw.strip().lower() in TRUE_VALUES
        )

        return cls(
            host=env.get("HOST", defaults.host),
            port=int(env.get("PORT", defaults.port)),
            endpoint_path=env.get("MCP_ENDPOINT_PATH", defaults.endpoint_path),
            allowed_origins=parse_origins(env.get("ALLOWED_ORIGINS")),
            api_key=env.get("MCP_API_KEY") or None,
            match_responses_by_id=match_by_id,
            max_in_flight=max_in_flight,
        )
