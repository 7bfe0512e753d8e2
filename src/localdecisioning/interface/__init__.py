"""Outer surfaces: argparse CLI and MCP server."""
