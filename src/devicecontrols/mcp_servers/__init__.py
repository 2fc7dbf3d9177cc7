"""MCP servers for the device controls."""
