#!/usr/bin/env python3
"""
Bear MCP Server
Exposes Bear's x-callback-url actions as MCP tools
"""

import asyncio
import logging
import sys
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError
from mcp.types import METHOD_NOT_FOUND, ErrorData, TextContent, Tool

from .config import get_settings
from .tools import TOOLS, TOOLS_BY_NAME, DispatchContext, invoke

LOGGER = logging.getLogger(__name__)

app = Server("bear-mcp")


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools"""
    return [tool.as_tool() for tool in TOOLS]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls"""
    tool = TOOLS_BY_NAME.get(name)
    if tool is None:
        raise McpError(ErrorData(code=METHOD_NOT_FOUND, message=f"Unknown tool: {name}"))
    return await invoke(tool, arguments, DispatchContext.from_settings(get_settings()))


async def main():
    """Run the MCP server"""
    settings = get_settings()
    logging.basicConfig(
        stream=sys.stderr,
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.token:
        LOGGER.info("BEAR_TOKEN not set; token-only actions need a per-call token")
    LOGGER.info("Bear MCP server running on stdio")
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
