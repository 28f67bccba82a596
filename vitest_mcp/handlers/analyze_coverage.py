"""MCP handler for analyze_coverage (delegates to CoverageAnalysisService)."""

from __future__ import annotations

from mcp.types import TextContent, Tool

from ..runtime import ToolRuntime
from ..services import create_coverage_service
from .responses import json_response

TOOL_DEFINITION = Tool(
    name="analyze_coverage",
    description=(
        "Run vitest with coverage for a source file or directory and report line, function, "
        "branch and statement coverage of production code. Test files, stories, mocks and "
        "build artifacts are excluded. The 'detailed' format adds uncovered lines, functions "
        "and branches per file. Threshold results appear only when thresholds are configured."
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "target": {
                "type": "string",
                "description": "Source file or directory to analyze (not a test file)",
            },
            "format": {
                "type": "string",
                "enum": ["summary", "detailed"],
                "description": "Output format (defaults to the configured coverage format)",
            },
            "exclude": {
                "type": "array",
                "items": {"type": "string"},
                "description": (
                    "Glob patterns to exclude from coverage analysis, "
                    'e.g. ["**/*.stories.*", "**/e2e/**"]. Replaces the configured defaults.'
                ),
            },
        },
        "required": ["target"],
    },
)


async def handle(arguments: dict, runtime: ToolRuntime) -> list[TextContent]:
    service = create_coverage_service(runtime)

    result = await service.analyze_coverage(
        target=arguments.get("target"),
        format=arguments.get("format"),
        exclude=arguments.get("exclude"),
    )

    return json_response(result.to_dict())
