"""MCP server factory and console entry point."""

from __future__ import annotations

import logging
import sys

from mcp.server.fastmcp import FastMCP

from ...config.runtime import get_settings
from .tools import register_tools

SERVER_NAME = "local-decisioning"


def create_server() -> FastMCP:
    """Build and return a FastMCP instance with the decisioning tools registered."""
    server = FastMCP(SERVER_NAME)
    register_tools(server)
    return server


def main():
    """Run the decisioning MCP server over stdio."""
    logging.basicConfig(level=get_settings().log_level, stream=sys.stderr)
    create_server().run(transport="stdio")


if __name__ == "__main__":
    main()
