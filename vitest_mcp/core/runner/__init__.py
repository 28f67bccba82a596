"""Runner module - build vitest commands and execute them."""

from .commands import (
    COVERAGE_RUN_FLAGS,
    build_coverage_command,
    build_test_command,
    candidate_test_files,
    display_command,
    find_test_file,
)
from .executor import ProcessOutput, ProcessRunner

__all__ = [
    "COVERAGE_RUN_FLAGS",
    "ProcessOutput",
    "ProcessRunner",
    "build_coverage_command",
    "build_test_command",
    "candidate_test_files",
    "display_command",
    "find_test_file",
]
