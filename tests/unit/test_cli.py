"""Unit tests for the CLI."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
from click.testing import CliRunner

from mcp_stream_runtime import __version__
from mcp_stream_runtime.cli import main


class TestCli:
    """Tests for option handling."""

    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_reload_requires_http(self) -> None:
        result = CliRunner().invoke(main, ["--reload"])

        assert result.exit_code != 0
        assert "--reload requires --http" in result.output

    def test_http_mode_runs_uvicorn(self) -> None:
        with (
            patch("uvicorn.run") as run,
            patch.dict("os.environ", {}, clear=False),
        ):
            result = CliRunner().invoke(main, ["--http", "--port", "8123"])

        assert result.exit_code == 0, result.output
        run.assert_called_once()
        assert run.call_args.args[0] == "mcp_stream_runtime.app:create_app"
        assert run.call_args.kwargs["factory"] is True
        assert run.call_args.kwargs["port"] == 8123

    def test_stdio_is_default(self) -> None:
        with patch("mcp_stream_runtime.cli._run_stdio_server") as run_stdio:
            result = CliRunner().invoke(main, [])

        assert result.exit_code == 0
        run_stdio.assert_called_once_with()


class TestHealthCheck:
    """Tests for --health."""

    def test_healthy(self) -> None:
        response = MagicMock()
        response.json.return_value = {"status": "ok", "sessions": 3}

        with patch("mcp_stream_runtime.cli.httpx.get", return_value=response) as get:
            result = CliRunner().invoke(main, ["--health", "--health-url", "http://srv:1/"])

        assert result.exit_code == 0
        get.assert_called_once_with("http://srv:1/health", timeout=5.0)
        assert "Server healthy: ok (3 sessions)" in result.output

    def test_unreachable(self) -> None:
        with patch(
            "mcp_stream_runtime.cli.httpx.get",
            side_effect=httpx.ConnectError("refused"),
        ):
            result = CliRunner().invoke(main, ["--health"])

        assert result.exit_code == 1
