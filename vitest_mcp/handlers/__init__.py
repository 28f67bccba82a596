"""Registry for MCP tool definitions and handlers."""

from .analyze_coverage import (
    TOOL_DEFINITION as ANALYZE_COVERAGE_TOOL,
    handle as handle_analyze_coverage,
)
from .list_tests import (
    TOOL_DEFINITION as LIST_TESTS_TOOL,
    handle as handle_list_tests,
)
from .run_tests import (
    TOOL_DEFINITION as RUN_TESTS_TOOL,
    handle as handle_run_tests,
)
from .set_project_root import (
    TOOL_DEFINITION as SET_PROJECT_ROOT_TOOL,
    handle as handle_set_project_root,
)

# All tool definitions, in the order agents are expected to use them
TOOLS = [
    SET_PROJECT_ROOT_TOOL,
    LIST_TESTS_TOOL,
    RUN_TESTS_TOOL,
    ANALYZE_COVERAGE_TOOL,
]

# Tool name to handler mapping
HANDLERS = {
    "set_project_root": handle_set_project_root,
    "list_tests": handle_list_tests,
    "run_tests": handle_run_tests,
    "analyze_coverage": handle_analyze_coverage,
}


__all__ = [
    # Tool definitions
    "TOOLS",
    "SET_PROJECT_ROOT_TOOL",
    "LIST_TESTS_TOOL",
    "RUN_TESTS_TOOL",
    "ANALYZE_COVERAGE_TOOL",
    # Handlers
    "HANDLERS",
    "handle_set_project_root",
    "handle_list_tests",
    "handle_run_tests",
    "handle_analyze_coverage",
]
