"""MCP surface for local decisioning."""
