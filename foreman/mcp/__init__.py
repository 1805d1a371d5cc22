"""Stdio MCP bridge to the foreman tool routes."""
