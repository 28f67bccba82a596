"""
MCP server entrypoint for vitest-mcp.

This module is intentionally thin:
- loads the configuration
- sets up the MCP server
- registers tools (from handlers)
- routes tool calls to handlers with the shared runtime
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Sequence

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent

from .config import Configuration, load_configuration
from .core.project import ProjectRootError
from .handlers import HANDLERS, TOOLS
from .runtime import ToolRuntime

logger = logging.getLogger(__name__)

SERVER_NAME = "vitest-mcp"


# =============================================================================
# Server construction
# =============================================================================

def create_server(runtime: ToolRuntime) -> Server:
    """Build a Server whose tools all share ``runtime``."""

    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools():
        """List all available tools."""
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> list[TextContent]:
        """Route tool calls to appropriate handlers."""
        return await dispatch(runtime, name, arguments)

    return server


async def dispatch(runtime: ToolRuntime, name: str, arguments: dict | None) -> list[TextContent]:
    """Run one tool; unexpected exceptions become a JSON error, never a protocol crash."""
    logger.info("Tool called: %s", name)

    handler = HANDLERS.get(name)
    if handler is None:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]

    try:
        return await handler(arguments or {}, runtime)
    except Exception as e:
        logger.exception("Tool %s failed", name)
        payload = {"success": False, "error": f"Internal error in {name}: {e}", "errorCode": "internal_error"}
        return [TextContent(type="text", text=json.dumps(payload, indent=2))]


def create_runtime(config: Configuration) -> ToolRuntime:
    """Runtime for a fresh session, pre-selecting the working directory when it is a project."""

    runtime = ToolRuntime(config=config)
    working_directory = config.server.working_directory
    if working_directory:
        try:
            runtime.context.set_project_root(working_directory)
        except ProjectRootError as e:
            logger.info("Working directory is not used as project root: %s", e)
    return runtime


# =============================================================================
# Entry Point
# =============================================================================

async def run_server(runtime: ToolRuntime) -> None:
    """Run the MCP server over stdio."""
    server = create_server(runtime)
    logger.info("Starting Vitest MCP Server...")
    logger.info("Registered %d tools: %s", len(TOOLS), [tool.name for tool in TOOLS])

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point."""
    config = load_configuration(sys.argv[1:] if argv is None else argv)

    # Logs go to stderr; stdout carries the protocol
    logging.basicConfig(level=config.log_level, stream=sys.stderr)

    asyncio.run(run_server(create_runtime(config)))


if __name__ == "__main__":
    main()
