"""Marp markdown to PowerPoint MCP server with short-lived download links."""

__version__ = "0.1.0"
