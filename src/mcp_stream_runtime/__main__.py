"""Entry point for ``python -m mcp_stream_runtime``."""

from .cli import main

if __name__ == "__main__":
    main()
