"""MCP server exposing task relationship management as tools."""

from .server import mcp

__all__ = ["mcp"]
