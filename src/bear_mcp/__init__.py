"""Bear MCP Server: Bear note actions over the Model Context Protocol."""

__version__ = "0.1.0"
