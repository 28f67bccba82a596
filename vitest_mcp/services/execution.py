"""Test execution service.

Runs vitest for a target and reduces its output to a StructuredTestResult.
"""

from __future__ import annotations

import logging
import time
from enum import Enum

from ..config import Configuration
from ..constants import OUTPUT_PREVIEW_CHARS
from ..core.parsing import parse_test_report
from ..core.project import ProjectContext, ProjectLocator
from ..core.results import (
    VALID_FORMATS,
    StructuredTestResult,
    TestFormat,
    TestResultSummarizer,
    parse_console_summary,
)
from ..core.runner import ProcessOutput, ProcessRunner, build_test_command, display_command
from .base import ErrorCode
from .targets import TargetResolver

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    """Where an orchestrated run currently is."""
    VALIDATING = "validating"
    COMMAND_BUILDING = "command_building"
    EXECUTING = "executing"
    PARSING = "parsing"
    RECONCILING = "reconciling"
    DONE = "done"
    ERROR = "error"


class TestExecutionService:
    """
    Orchestrate a run_tests call.

    Every path returns a StructuredTestResult; problems are reported as
    ``status: "error"`` with an ``errorCode`` rather than raised.
    """

    __test__ = False

    def __init__(
        self,
        config: Configuration,
        context: ProjectContext,
        runner: ProcessRunner,
        locator: ProjectLocator | None = None,
        summarizer: TestResultSummarizer | None = None,
    ):
        self.config = config
        self.context = context
        self.runner = runner
        self.locator = locator or ProjectLocator()
        self.summarizer = summarizer or TestResultSummarizer()
        self.targets = TargetResolver(context, self.locator, config.server.allow_root_execution)

    async def run_tests(self, target: str | None, format: str | None = None) -> StructuredTestResult:
        start = time.monotonic()
        stage = Stage.VALIDATING
        fallback_format: TestFormat = format if format in VALID_FORMATS else self.config.test_defaults.format
        command = ""

        try:
            if format is not None and format not in VALID_FORMATS:
                return StructuredTestResult.failure(
                    f"Invalid format '{format}'. Expected one of: {', '.join(VALID_FORMATS)}",
                    ErrorCode.VALIDATION_ERROR.value,
                    format=fallback_format,
                    duration=_elapsed_ms(start),
                )

            resolved = self.targets.resolve(target)
            if not resolved.success:
                logger.info("run_tests rejected: %s", resolved.error.message)
                return StructuredTestResult.failure(
                    resolved.error.message,
                    resolved.error.code.value,
                    format=fallback_format,
                    duration=_elapsed_ms(start),
                )
            target_info = resolved.data

            stage = self._advance(Stage.COMMAND_BUILDING)
            argv = build_test_command(target_info.relative_path, self.config.runner.command)
            command = display_command(argv)

            stage = self._advance(Stage.EXECUTING)
            timeout_ms = self.config.test_defaults.timeout_ms
            output = await self.runner.execute(argv, target_info.project_root, timeout_ms)

            if output.timed_out:
                return StructuredTestResult.failure(
                    f"Test run timed out after {timeout_ms / 1000:g} seconds "
                    f"(elapsed {output.duration} ms). Try a more specific target or increase the timeout.",
                    ErrorCode.TIMEOUT_ERROR.value,
                    format=fallback_format,
                    command=command,
                    duration=_elapsed_ms(start),
                )

            stage = self._advance(Stage.PARSING)
            report = parse_test_report(output.stdout)
            result_format = determine_format(
                format,
                has_failures=not output.success,
                is_directory=target_info.is_directory,
                default=self.config.test_defaults.format,
            )

            stage = self._advance(Stage.RECONCILING)
            if report is not None:
                result = self.summarizer.summarize(report, result_format)
            else:
                logger.warning("No JSON report in runner output, falling back to console summary")
                console = parse_console_summary(f"{output.stdout}\n{output.stderr}")
                if console is None and not output.success:
                    return StructuredTestResult.failure(
                        f"Test run failed with exit code {output.exit_code} and produced no report. "
                        f"Output preview: {output_preview(output)}",
                        ErrorCode.EXECUTION_ERROR.value,
                        format=result_format,
                        command=command,
                        duration=_elapsed_ms(start),
                    )
                result = self.summarizer.fallback(output.success, console, result_format)

            stage = self._advance(Stage.DONE)
            result.command = command
            result.duration = _elapsed_ms(start)
            return result

        except Exception as e:
            logger.exception("run_tests failed while %s", stage.value)
            failed_stage, stage = stage, self._advance(Stage.ERROR)
            return StructuredTestResult.failure(
                f"Unexpected error while {failed_stage.value.replace('_', ' ')}: {e}",
                ErrorCode.INTERNAL_ERROR.value,
                format=fallback_format,
                command=command,
                duration=_elapsed_ms(start),
            )

    def _advance(self, stage: Stage) -> Stage:
        logger.debug("run_tests stage: %s", stage.value)
        return stage


def determine_format(
    requested: str | None,
    *,
    has_failures: bool,
    is_directory: bool,
    default: TestFormat,
) -> TestFormat:
    """Explicit format wins; failures and directory runs default to detailed."""
    if requested in VALID_FORMATS:
        return requested
    if has_failures or is_directory:
        return "detailed"
    return default


def output_preview(output: ProcessOutput, limit: int = OUTPUT_PREVIEW_CHARS) -> str:
    """Start of stderr (or stdout when stderr is empty), truncated."""
    text = output.stderr.strip() or output.stdout.strip()
    if not text:
        return "<no output>"
    return text if len(text) <= limit else text[:limit] + "..."


def _elapsed_ms(start: float) -> int:
    return round((time.monotonic() - start) * 1000)
