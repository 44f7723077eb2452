"""docs-mcp: serve a documentation snapshot through a single MCP search tool."""

__version__ = "0.1.0"
