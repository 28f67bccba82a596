"""Data models for coverage reconciliation and reporting."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def percentage(covered: int, total: int) -> float:
    """covered/total as a percentage; 0 when there is nothing to cover."""
    if total <= 0:
        return 0.0
    return covered / total * 100


def round_half_up(value: float) -> int:
    """Round .5 away from zero for the non-negative values used here."""
    return int(value + 0.5)


@dataclass(frozen=True)
class MetricTotals:
    """A single metric's ``{total, covered, pct}`` triple."""
    total: int = 0
    covered: int = 0

    @property
    def pct(self) -> float:
        return percentage(self.covered, self.total)

    def __add__(self, other: MetricTotals) -> MetricTotals:
        return MetricTotals(self.total + other.total, self.covered + other.covered)

    def to_dict(self) -> dict:
        return {"total": self.total, "covered": self.covered, "pct": self.pct}


@dataclass(frozen=True)
class CoverageSummary:
    """Aggregate coverage across lines, functions, branches and statements."""
    lines: MetricTotals = field(default_factory=MetricTotals)
    functions: MetricTotals = field(default_factory=MetricTotals)
    branches: MetricTotals = field(default_factory=MetricTotals)
    statements: MetricTotals = field(default_factory=MetricTotals)

    def __add__(self, other: CoverageSummary) -> CoverageSummary:
        return CoverageSummary(
            lines=self.lines + other.lines,
            functions=self.functions + other.functions,
            branches=self.branches + other.branches,
            statements=self.statements + other.statements,
        )

    def percentages(self) -> dict[str, int]:
        """Flattened, rounded percentages keyed by metric name."""
        return {
            "lines": round_half_up(self.lines.pct),
            "functions": round_half_up(self.functions.pct),
            "branches": round_half_up(self.branches.pct),
            "statements": round_half_up(self.statements.pct),
        }

    def to_dict(self) -> dict:
        return {
            "lines": self.lines.to_dict(),
            "functions": self.functions.to_dict(),
            "branches": self.branches.to_dict(),
            "statements": self.statements.to_dict(),
        }


@dataclass(frozen=True)
class FileCoverage:
    """
    One file's raw coverage record, normalized from the Istanbul layout.

    Location maps hold whatever the report carried; hit maps are coerced
    to ints so that malformed counts never reach the arithmetic.
    """
    path: str
    statement_map: dict[str, Any] = field(default_factory=dict)
    function_map: dict[str, Any] = field(default_factory=dict)
    branch_map: dict[str, Any] = field(default_factory=dict)
    statement_hits: dict[str, int] = field(default_factory=dict)
    function_hits: dict[str, int] = field(default_factory=dict)
    branch_hits: dict[str, list[int]] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, path: str, record: Any) -> FileCoverage:
        """Build from an Istanbul-style record, tolerating missing or odd fields."""
        if not isinstance(record, dict):
            return cls(path=path)

        # Some serializers wrap the file record in {"data": {...}}
        inner = record.get("data")
        if isinstance(inner, dict) and ("s" in inner or "statementMap" in inner):
            record = inner

        return cls(
            path=str(record.get("path") or path),
            statement_map=_as_dict(record.get("statementMap")),
            function_map=_as_dict(record.get("fnMap", record.get("functionMap"))),
            branch_map=_as_dict(record.get("branchMap")),
            statement_hits=_hit_counts(record.get("s", record.get("statementHits"))),
            function_hits=_hit_counts(record.get("f", record.get("functionHits"))),
            branch_hits=_branch_counts(record.get("b", record.get("branchHits"))),
        )

    def summary(self) -> CoverageSummary:
        """Per-file totals; branches are counted per arm."""
        statements = MetricTotals(
            total=len(self.statement_hits),
            covered=sum(1 for count in self.statement_hits.values() if count > 0),
        )
        functions = MetricTotals(
            total=len(self.function_hits),
            covered=sum(1 for count in self.function_hits.values() if count > 0),
        )
        arms = [count for counts in self.branch_hits.values() for count in counts]
        branches = MetricTotals(
            total=len(arms),
            covered=sum(1 for count in arms if count > 0),
        )
        # Lines mirror statements: the report carries no separate line map
        return CoverageSummary(
            lines=statements,
            functions=functions,
            branches=branches,
            statements=statements,
        )


@dataclass
class UncoveredItems:
    """Uncovered lines, functions and branch lines for one file."""
    lines: list[int] = field(default_factory=list)
    functions: list[dict] = field(default_factory=list)
    branches: list[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.lines or self.functions or self.branches)

    def to_dict(self) -> dict:
        return {
            "lines": self.lines,
            "functions": self.functions,
            "branches": self.branches,
        }


@dataclass(frozen=True)
class ReconciledCoverage:
    """Output of the reconciler: the kept files and their aggregate."""
    summary: CoverageSummary
    files: dict[str, FileCoverage]


@dataclass(frozen=True)
class ThresholdEvaluation:
    """Outcome of comparing coverage against configured thresholds."""
    meets: bool
    violations: list[str] = field(default_factory=list)


@dataclass
class ProcessedCoverageResult:
    """Final analyze_coverage contract returned to the RPC layer."""
    success: bool
    coverage: dict[str, int]
    totals: dict[str, int]
    command: str = ""
    duration: int = 0
    file: str | None = None
    meets_threshold: bool | None = None
    threshold_violations: list[str] | None = None
    uncovered: dict[str, UncoveredItems] | None = None
    file_breakdown: list[dict] | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def failure(
        cls,
        message: str,
        error_code: str | None = None,
        command: str = "",
        duration: int = 0,
    ) -> ProcessedCoverageResult:
        """Error-shaped result: zero coverage, no threshold keys."""
        return cls(
            success=False,
            coverage={"lines": 0, "functions": 0, "branches": 0, "statements": 0},
            totals={"lines": 0, "functions": 0, "branches": 0},
            command=command,
            duration=duration,
            error=message,
            error_code=error_code,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization (camelCase keys)."""
        result: dict[str, Any] = {
            "success": self.success,
            "coverage": self.coverage,
            "totals": self.totals,
        }
        if self.file is not None:
            result["file"] = self.file
        # Absent keys mean "no thresholds configured"
        if self.meets_threshold is not None:
            result["meetsThreshold"] = self.meets_threshold
        if self.threshold_violations is not None:
            result["thresholdViolations"] = self.threshold_violations
        if self.uncovered is not None:
            result["uncovered"] = {
                name: items.to_dict() for name, items in self.uncovered.items()
            }
        if self.file_breakdown is not None:
            result["fileBreakdown"] = self.file_breakdown
        result["command"] = self.command
        result["duration"] = self.duration
        if self.error is not None:
            result["error"] = self.error
        if self.error_code is not None:
            result["errorCode"] = self.error_code
        return result


# =============================================================================
# Coercion helpers
# =============================================================================

def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_count(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    return 0


def _hit_counts(value: Any) -> dict[str, int]:
    if not isinstance(value, dict):
        return {}
    return {str(key): _as_count(count) for key, count in value.items()}


def _branch_counts(value: Any) -> dict[str, list[int]]:
    if not isinstance(value, dict):
        return {}
    result: dict[str, list[int]] = {}
    for key, counts in value.items():
        if isinstance(counts, list):
            result[str(key)] = [_as_count(count) for count in counts]
        else:
            # A scalar arm count is treated as a single-arm branch
            result[str(key)] = [_as_count(counts)]
    return result
