"""MCP server exposing the documentation search tool."""
