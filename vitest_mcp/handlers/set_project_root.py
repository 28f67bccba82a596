"""MCP handler for set_project_root (delegates to ProjectService)."""

from __future__ import annotations

from mcp.types import TextContent, Tool

from ..runtime import ToolRuntime
from ..services import create_project_service
from .responses import json_response

# =============================================================================
# Tool Definition
# =============================================================================

TOOL_DEFINITION = Tool(
    name="set_project_root",
    description=(
        "Set the project root directory for all subsequent operations. "
        "This must be called before using other tools to specify which repository to work with."
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": (
                    "Absolute path to the project root directory "
                    "(must start with / on Unix or drive letter on Windows)"
                ),
            }
        },
        "required": ["path"],
    },
)


# =============================================================================
# Handler
# =============================================================================

async def handle(arguments: dict, runtime: ToolRuntime) -> list[TextContent]:
    """Validate and store the project root, then report the project name."""
    service = create_project_service(runtime)
    result = service.set_project_root(arguments.get("path"))

    if not result.success:
        return json_response({
            "success": False,
            "projectRoot": "",
            "projectName": "",
            "message": f"Failed to set project root: {result.error.message}",
            "errorCode": result.error.code.value,
        })

    info = result.data
    return json_response({
        "success": True,
        "projectRoot": info.path,
        "projectName": info.name,
        "message": f"Project root set to: {info.path}",
    })
