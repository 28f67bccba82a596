"""Coverage analysis service.

Runs vitest with coverage for a source target, reconciles the coverage map
and checks thresholds.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from ..config import Configuration
from ..constants import COVERAGE_FALLBACK_FILE, COVERAGE_PROVIDERS
from ..core.coverage import (
    ChainedThresholdSource,
    ConfiguredThresholdSource,
    CoverageReconciler,
    ProcessedCoverageResult,
    ThresholdEvaluator,
    ThresholdSource,
    VitestConfigThresholdSource,
    extract_uncovered,
    file_breakdown,
)
from ..core.parsing import parse_coverage_report
from ..core.project import ProjectContext, ProjectLocator, check_versions
from ..core.results import VALID_FORMATS
from ..core.runner import ProcessRunner, build_coverage_command, display_command, find_test_file
from .base import ErrorCode
from .execution import Stage, output_preview
from .targets import TargetResolver

logger = logging.getLogger(__name__)


class CoverageAnalysisService:
    """
    Orchestrate an analyze_coverage call.

    A run whose tests fail still succeeds when coverage data was produced.
    Threshold keys appear in the result only when a threshold source
    reports thresholds for the project.
    """

    def __init__(
        self,
        config: Configuration,
        context: ProjectContext,
        runner: ProcessRunner,
        locator: ProjectLocator | None = None,
        threshold_source: ThresholdSource | None = None,
        evaluator: ThresholdEvaluator | None = None,
    ):
        self.config = config
        self.context = context
        self.runner = runner
        self.locator = locator or ProjectLocator()
        self.threshold_source = threshold_source or default_threshold_source(config)
        self.evaluator = evaluator or ThresholdEvaluator()
        self.targets = TargetResolver(context, self.locator, config.server.allow_root_execution)

    async def analyze_coverage(
        self,
        target: str | None,
        format: str | None = None,
        exclude: Sequence[str] | None = None,
    ) -> ProcessedCoverageResult:
        start = time.monotonic()
        stage = Stage.VALIDATING
        command = ""

        try:
            if format is not None and format not in VALID_FORMATS:
                return ProcessedCoverageResult.failure(
                    f"Invalid format '{format}'. Expected one of: {', '.join(VALID_FORMATS)}",
                    ErrorCode.VALIDATION_ERROR.value,
                    duration=_elapsed_ms(start),
                )
            if exclude is not None and (
                isinstance(exclude, str) or not all(isinstance(p, str) for p in exclude)
            ):
                return ProcessedCoverageResult.failure(
                    "'exclude' must be a list of glob patterns",
                    ErrorCode.VALIDATION_ERROR.value,
                    duration=_elapsed_ms(start),
                )

            resolved = self.targets.resolve(target, for_coverage=True)
            if not resolved.success:
                logger.info("analyze_coverage rejected: %s", resolved.error.message)
                return ProcessedCoverageResult.failure(
                    resolved.error.message,
                    resolved.error.code.value,
                    duration=_elapsed_ms(start),
                )
            target_info = resolved.data
            project_root = target_info.project_root
            result_format = format or self.config.coverage_defaults.format
            exclude_globs = tuple(exclude) if exclude else self.config.coverage_defaults.exclude

            versions = check_versions(self.locator, project_root)
            if not versions.ok:
                return ProcessedCoverageResult.failure(
                    f"Version compatibility issues found:\n{versions.report()}",
                    ErrorCode.VALIDATION_ERROR.value,
                    duration=_elapsed_ms(start),
                )
            for warning in versions.warnings:
                logger.warning(warning)

            stage = self._advance(Stage.COMMAND_BUILDING)
            test_selection = None
            if not target_info.is_directory:
                test_selection = find_test_file(target_info.absolute_path, project_root)
                if test_selection is None:
                    logger.info("No test file found for %s, running the whole suite", target_info.relative_path)

            argv = build_coverage_command(
                target_info.relative_path,
                is_directory=target_info.is_directory,
                exclude=exclude_globs,
                test_selection=test_selection,
                thresholds=self.config.coverage_defaults.effective_thresholds(),
                runner_command=self.config.runner.command,
            )
            command = display_command(argv)

            stage = self._advance(Stage.EXECUTING)
            timeout_ms = self.config.test_defaults.timeout_ms * self.config.coverage_defaults.timeout_multiplier
            output = await self.runner.execute(argv, project_root, timeout_ms)

            if output.timed_out:
                return ProcessedCoverageResult.failure(
                    f"Coverage run timed out after {timeout_ms / 1000:g} seconds "
                    f"(elapsed {output.duration} ms). Try a more specific target or increase the timeout.",
                    ErrorCode.TIMEOUT_ERROR.value,
                    command=command,
                    duration=_elapsed_ms(start),
                )

            stage = self._advance(Stage.PARSING)
            coverage_map = extract_coverage_map(parse_coverage_report(output.stdout))
            if coverage_map is None:
                logger.info("No coverage map in stdout, trying %s", "/".join(COVERAGE_FALLBACK_FILE))
                coverage_map = load_fallback_coverage(project_root)

            if coverage_map is None:
                message = (
                    "No coverage data found. Make sure a coverage provider "
                    f"({' or '.join(COVERAGE_PROVIDERS)}) is installed."
                )
                if not output.success:
                    message += f" Runner exited with code {output.exit_code}. Output preview: {output_preview(output)}"
                return ProcessedCoverageResult.failure(
                    message,
                    ErrorCode.PARSE_ERROR.value,
                    command=command,
                    duration=_elapsed_ms(start),
                )

            stage = self._advance(Stage.RECONCILING)
            reconciler = CoverageReconciler(exclude_globs, project_root)
            reconciled = reconciler.reconcile(coverage_map, target_info.relative_path)
            if not reconciled.files:
                logger.warning("No production files left after filtering for %s", target_info.relative_path)

            summary = reconciled.summary
            percentages = summary.percentages()
            result = ProcessedCoverageResult(
                success=True,
                coverage=percentages,
                totals={
                    "lines": summary.lines.total,
                    "functions": summary.functions.total,
                    "branches": summary.branches.total,
                },
                command=command,
            )
            if len(reconciled.files) == 1:
                result.file = next(iter(reconciled.files))

            thresholds = self.threshold_source.get_thresholds(project_root)
            if thresholds is not None:
                evaluation = self.evaluator.evaluate(percentages, thresholds)
                result.meets_threshold = evaluation.meets
                # Violations are listed only when there are any
                result.threshold_violations = evaluation.violations or None

            if result_format == "detailed":
                result.uncovered = extract_uncovered(reconciled.files)
                result.file_breakdown = file_breakdown(reconciled.files)

            stage = self._advance(Stage.DONE)
            result.duration = _elapsed_ms(start)
            return result

        except Exception as e:
            logger.exception("analyze_coverage failed while %s", stage.value)
            self._advance(Stage.ERROR)
            return ProcessedCoverageResult.failure(
                f"Unexpected error while {stage.value.replace('_', ' ')}: {e}",
                ErrorCode.INTERNAL_ERROR.value,
                command=command,
                duration=_elapsed_ms(start),
            )

    def _advance(self, stage: Stage) -> Stage:
        logger.debug("analyze_coverage stage: %s", stage.value)
        return stage


def default_threshold_source(config: Configuration) -> ThresholdSource:
    """Server-configured thresholds first, then the project's vitest config."""
    return ChainedThresholdSource(
        ConfiguredThresholdSource(
            config.coverage_defaults.thresholds,
            config.coverage_defaults.threshold,
        ),
        VitestConfigThresholdSource(),
    )


def extract_coverage_map(report: dict[str, Any] | None) -> dict[str, Any] | None:
    """
    The per-file coverage map inside a parsed report.

    Accepts a test report carrying ``coverageMap`` or a bare
    ``coverage-final.json`` style mapping of path to file record.
    """
    if not isinstance(report, dict):
        return None

    coverage_map = report.get("coverageMap")
    if isinstance(coverage_map, dict):
        return coverage_map

    if report and all(_is_file_record(record) for record in report.values()):
        return report
    return None


def load_fallback_coverage(project_root: str) -> dict[str, Any] | None:
    """Read ``coverage/coverage-final.json`` under the project root, if usable."""
    path = Path(project_root).joinpath(*COVERAGE_FALLBACK_FILE)
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Unreadable coverage file %s: %s", path, e)
        return None
    return extract_coverage_map(data)


def _is_file_record(record: Any) -> bool:
    if not isinstance(record, dict):
        return False
    if isinstance(record.get("data"), dict):
        record = record["data"]
    return any(key in record for key in ("s", "statementMap", "statementHits"))


def _elapsed_ms(start: float) -> int:
    return round((time.monotonic() - start) * 1000)
