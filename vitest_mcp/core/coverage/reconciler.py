"""Filter a raw coverage map down to production files and aggregate it."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import PurePosixPath
from typing import Any

from ...constants import (
    BUILD_ARTIFACT_MARKERS,
    NON_PRODUCTION_MARKERS,
    TEST_FILE_MARKERS,
)
from ..globs import matches_any
from .models import (
    CoverageSummary,
    FileCoverage,
    ReconciledCoverage,
    UncoveredItems,
)

logger = logging.getLogger(__name__)

# Last two path segments, e.g. "/repo/src/utils/math.ts" -> "utils/math.ts"
_TWO_SEGMENT_SUFFIX = re.compile(r".*/([^/]+/[^/]+)$")


class CoverageReconciler:
    """
    Reduce a raw coverage map to the files that matter for a target.

    Exclusion rules are applied in order and each one is final:
    test files, non-production files, build/tooling artifacts,
    caller exclude globs, and finally the target filter.
    """

    def __init__(
        self,
        exclude_globs: Iterable[str] = (),
        project_root: str | None = None,
    ):
        self.exclude_globs = tuple(exclude_globs)
        self.project_root = project_root

    def reconcile(
        self,
        raw_map: dict[str, Any] | None,
        target_filter: str | None = None,
    ) -> ReconciledCoverage:
        """Filter the map and sum totals across the files that survive."""

        files: dict[str, FileCoverage] = {}
        for file_path, record in (raw_map or {}).items():
            file_path = str(file_path)
            reason = self.exclusion_reason(file_path, target_filter)
            if reason:
                logger.debug("Excluding %s (%s)", file_path, reason)
                continue
            files[file_path] = FileCoverage.from_raw(file_path, record)

        summary = CoverageSummary()
        for file_coverage in files.values():
            summary = summary + file_coverage.summary()

        return ReconciledCoverage(summary=summary, files=files)

    def exclusion_reason(self, file_path: str, target_filter: str | None = None) -> str | None:
        """Name the first rule that drops this path, or None to keep it."""

        normalized = file_path.replace("\\", "/")

        if any(marker in normalized for marker in TEST_FILE_MARKERS):
            return "test file"
        if any(marker in normalized for marker in NON_PRODUCTION_MARKERS):
            return "non-production file"
        if any(marker in normalized for marker in BUILD_ARTIFACT_MARKERS):
            return "build or tooling artifact"
        if self.exclude_globs and self._matches_exclude(normalized):
            return "exclude pattern"
        if target_filter and not matches_target(normalized, target_filter):
            return "outside target"
        return None

    def _matches_exclude(self, normalized: str) -> bool:
        candidates = [normalized]
        if self.project_root:
            root = self.project_root.replace("\\", "/").rstrip("/") + "/"
            if normalized.startswith(root):
                candidates.append(normalized[len(root):])

        return any(matches_any(candidate, self.exclude_globs) for candidate in candidates)


def matches_target(file_path: str, target_filter: str) -> bool:
    """A path matches when it contains the target or its two-segment suffix does."""

    clean_target = target_filter.replace("\\", "/")
    if clean_target.startswith("./"):
        clean_target = clean_target[2:]
    if not clean_target:
        return True

    suffix = _TWO_SEGMENT_SUFFIX.sub(r"\1", file_path)
    return clean_target in file_path or clean_target in suffix


def extract_uncovered(files: dict[str, FileCoverage]) -> dict[str, UncoveredItems]:
    """
    Collect uncovered lines, functions and branch lines for each file.

    Results are keyed by base name and only include files with at least
    one uncovered item. A file that cannot be read is skipped with a warning.
    """

    uncovered: dict[str, UncoveredItems] = {}

    for file_path, coverage in files.items():
        try:
            items = _uncovered_for_file(coverage)
        except Exception as e:
            logger.warning("Skipping uncovered extraction for %s: %s", file_path, e)
            continue

        if not items.is_empty:
            uncovered[PurePosixPath(file_path.replace("\\", "/")).name or file_path] = items

    return uncovered


def _uncovered_for_file(coverage: FileCoverage) -> UncoveredItems:
    lines: set[int] = set()
    for stmt_id, count in coverage.statement_hits.items():
        if count == 0:
            line = _start_line(coverage.statement_map.get(stmt_id))
            if line > 0:
                lines.add(line)

    functions: list[dict] = []
    for fn_id, count in coverage.function_hits.items():
        fn = coverage.function_map.get(fn_id)
        if count == 0 and isinstance(fn, dict):
            functions.append({
                "name": fn.get("name") or "anonymous",
                "line": _start_line(fn.get("decl")) or _start_line(fn.get("loc")),
            })

    branches: set[int] = set()
    for branch_id, counts in coverage.branch_hits.items():
        branch = coverage.branch_map.get(branch_id)
        if isinstance(branch, dict) and any(count == 0 for count in counts):
            line = _start_line(branch.get("loc")) or _as_line(branch.get("line"))
            if line > 0:
                branches.add(line)

    return UncoveredItems(
        lines=sorted(lines),
        functions=sorted(functions, key=lambda fn: fn["line"]),
        branches=sorted(branches),
    )


def _start_line(location: Any) -> int:
    """Line of ``location.start.line``; 0 when any piece is missing."""
    if not isinstance(location, dict):
        return 0
    start = location.get("start")
    if not isinstance(start, dict):
        return 0
    return _as_line(start.get("line"))


def _as_line(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 0


def file_breakdown(files: dict[str, FileCoverage]) -> list[dict]:
    """Per-file coverage detail with rounded percentages."""

    breakdown = []
    for file_path, coverage in files.items():
        summary = coverage.summary()
        metrics = {
            "lines": summary.lines,
            "functions": summary.functions,
            "branches": summary.branches,
            "statements": summary.statements,
        }
        breakdown.append({
            "path": file_path,
            "coverage": summary.percentages(),
            "totals": {name: m.total for name, m in metrics.items()},
            "covered": {name: m.covered for name, m in metrics.items()},
        })
    return breakdown
