"""
Tests for coverage reconciliation, uncovered extraction and thresholds.
"""

import math

import pytest

from vitest_mcp.core.coverage import (
    ChainedThresholdSource,
    ConfiguredThresholdSource,
    CoverageReconciler,
    FileCoverage,
    MetricTotals,
    ProcessedCoverageResult,
    ThresholdEvaluator,
    VitestConfigThresholdSource,
    extract_uncovered,
    file_breakdown,
    matches_target,
)
from vitest_mcp.core.coverage.thresholds import parse_thresholds_block


# =============================================================================
# Reconciler Tests
# =============================================================================

class TestCoverageReconciler:
    """Tests for filtering and aggregating raw coverage maps."""

    def test_single_file_percentages(self, coverage_record):
        """Test one covered and one uncovered statement, one function, two arms."""
        raw = {
            "/repo/src/math.ts": coverage_record(
                "/repo/src/math.ts",
                statements={1: 1, 2: 0},
                functions={"add": (1, 1)},
                branches={2: [1, 0]},
            )
        }

        result = CoverageReconciler().reconcile(raw)

        assert result.summary.percentages() == {
            "lines": 50,
            "functions": 100,
            "branches": 50,
            "statements": 50,
        }
        assert list(result.files) == ["/repo/src/math.ts"]

    def test_branches_counted_per_arm(self, coverage_record):
        """Test that a three-arm branch contributes three to the total."""
        raw = {"/repo/src/a.ts": coverage_record("/repo/src/a.ts", {1: 1}, branches={3: [2, 0, 1]})}

        summary = CoverageReconciler().reconcile(raw).summary

        assert summary.branches.total == 3
        assert summary.branches.covered == 2

    def test_empty_file_has_zero_not_nan(self):
        """Test that a file with nothing to cover reports 0 percent."""
        raw = {"/repo/src/types.ts": {"statementMap": {}, "s": {}, "fnMap": {}, "f": {}, "branchMap": {}, "b": {}}}

        percentages = CoverageReconciler().reconcile(raw).summary.percentages()

        assert percentages == {"lines": 0, "functions": 0, "branches": 0, "statements": 0}
        assert all(math.isfinite(value) for value in percentages.values())

    def test_empty_map(self):
        """Test that no map at all gives an empty, zeroed result."""
        result = CoverageReconciler().reconcile(None)

        assert result.files == {}
        assert result.summary.lines.pct == 0

    @pytest.mark.parametrize("path,reason", [
        ("/repo/src/math.test.ts", "test file"),
        ("/repo/src/math.spec.tsx", "test file"),
        ("/repo/src/__tests__/helpers.ts", "test file"),
        ("/repo/src/Button.stories.tsx", "non-production file"),
        ("/repo/e2e/login.ts", "non-production file"),
        ("/repo/src/__mocks__/fs.ts", "non-production file"),
        ("/repo/node_modules/lodash/index.js", "build or tooling artifact"),
        ("/repo/dist/index.js", "build or tooling artifact"),
        ("/repo/vite.config.ts", "build or tooling artifact"),
        ("/repo/src/math.ts", None),
    ])
    def test_exclusion_reason(self, path, reason):
        """Test each hard exclusion rule."""
        assert CoverageReconciler().exclusion_reason(path) == reason

    def test_excluded_files_do_not_count(self, coverage_record):
        """Test that test and tooling files are left out of the aggregate."""
        raw = {
            "/repo/src/math.ts": coverage_record("/repo/src/math.ts", {1: 1, 2: 1}),
            "/repo/src/math.test.ts": coverage_record("/repo/src/math.test.ts", {1: 0, 2: 0, 3: 0}),
            "/repo/vitest.config.ts": coverage_record("/repo/vitest.config.ts", {1: 0}),
        }

        result = CoverageReconciler().reconcile(raw)

        assert list(result.files) == ["/repo/src/math.ts"]
        assert result.summary.lines.pct == 100

    def test_exclude_globs_relative_to_root(self, coverage_record):
        """Test caller globs against root-relative paths, including top-level files."""
        raw = {
            "/repo/src/generated/api.ts": coverage_record("/repo/src/generated/api.ts", {1: 0}),
            "/repo/legacy.ts": coverage_record("/repo/legacy.ts", {1: 0}),
            "/repo/src/keep.ts": coverage_record("/repo/src/keep.ts", {1: 1}),
        }
        reconciler = CoverageReconciler(["**/generated/**", "**/legacy.ts"], "/repo")

        result = reconciler.reconcile(raw)

        assert list(result.files) == ["/repo/src/keep.ts"]

    def test_target_filter(self, coverage_record):
        """Test that only files matching the target survive."""
        raw = {
            "/repo/src/utils/math.ts": coverage_record("/repo/src/utils/math.ts", {1: 1}),
            "/repo/src/other.ts": coverage_record("/repo/src/other.ts", {1: 0}),
        }

        result = CoverageReconciler().reconcile(raw, "./src/utils")

        assert list(result.files) == ["/repo/src/utils/math.ts"]

    def test_malformed_record_counts_as_empty(self):
        """Test that junk records degrade to zero totals."""
        raw = {"/repo/src/a.ts": "not a record", "/repo/src/b.ts": {"s": {"0": "x", "1": 2}}}

        summary = CoverageReconciler().reconcile(raw).summary

        assert summary.statements == MetricTotals(total=2, covered=1)


class TestMatchesTarget:
    """Tests for the target path filter."""

    @pytest.mark.parametrize("path,target,expected", [
        ("/repo/src/utils/math.ts", "src/utils/math.ts", True),
        ("/repo/src/utils/math.ts", "./src/utils", True),
        ("/repo/src/utils/math.ts", "utils/math.ts", True),
        ("/repo/lib/x.ts", "src/x.ts", False),
        ("/repo/lib/x.ts", "./", True),
    ])
    def test_matches_target(self, path, target, expected):
        """Test substring and two-segment suffix matching."""
        assert matches_target(path, target) is expected


# =============================================================================
# FileCoverage / result model Tests
# =============================================================================

class TestFileCoverage:
    """Tests for normalizing Istanbul records."""

    def test_data_wrapper_is_unwrapped(self):
        """Test records nested under a ``data`` key."""
        record = {"data": {"path": "/repo/a.ts", "statementMap": {}, "s": {"0": 1}}}

        coverage = FileCoverage.from_raw("/repo/a.ts", record)

        assert coverage.statement_hits == {"0": 1}

    def test_long_field_names(self):
        """Test the alternate hit map names."""
        record = {"statementHits": {"0": 0}, "functionHits": {"0": 3}, "branchHits": {"0": 1}}

        coverage = FileCoverage.from_raw("/repo/a.ts", record)

        assert coverage.function_hits == {"0": 3}
        assert coverage.branch_hits == {"0": [1]}


class TestProcessedCoverageResult:
    """Tests for the analyze_coverage result shape."""

    def test_threshold_keys_absent_when_unset(self):
        """Test that threshold keys only appear when evaluated."""
        result = ProcessedCoverageResult(
            success=True,
            coverage={"lines": 50, "functions": 100, "branches": 50, "statements": 50},
            totals={"lines": 2, "functions": 1, "branches": 2},
        )

        data = result.to_dict()

        assert "meetsThreshold" not in data
        assert "thresholdViolations" not in data
        assert "error" not in data

    def test_failure_shape(self):
        """Test the zeroed error result."""
        data = ProcessedCoverageResult.failure("No coverage data found", "parse_error").to_dict()

        assert data["success"] is False
        assert data["coverage"] == {"lines": 0, "functions": 0, "branches": 0, "statements": 0}
        assert data["error"] == "No coverage data found"
        assert data["errorCode"] == "parse_error"
        assert "meetsThreshold" not in data


# =============================================================================
# Uncovered / breakdown Tests
# =============================================================================

class TestUncovered:
    """Tests for uncovered lines, functions and branches."""

    def test_extract_uncovered(self, coverage_record):
        """Test sorting, de-duplication and anonymous functions."""
        record = coverage_record(
            "/repo/src/math.ts",
            statements={5: 0, 3: 0, 7: 1},
            functions={"sub": (10, 0), "": (2, 0), "add": (1, 4)},
            branches={4: [1, 0], 8: [1, 1]},
        )
        # Second statement on line 3
        record["statementMap"]["9"] = record["statementMap"]["1"]
        record["s"]["9"] = 0
        files = {"/repo/src/math.ts": FileCoverage.from_raw("/repo/src/math.ts", record)}

        uncovered = extract_uncovered(files)

        items = uncovered["math.ts"]
        assert items.lines == [3, 5]
        assert items.functions == [{"name": "anonymous", "line": 2}, {"name": "sub", "line": 10}]
        assert items.branches == [4]

    def test_fully_covered_files_are_omitted(self, coverage_record):
        """Test that files with nothing uncovered are not listed."""
        record = coverage_record("/repo/src/ok.ts", {1: 1}, {"f": (1, 1)}, {1: [1, 1]})
        files = {"/repo/src/ok.ts": FileCoverage.from_raw("/repo/src/ok.ts", record)}

        assert extract_uncovered(files) == {}

    def test_file_breakdown(self, coverage_record):
        """Test per-file totals and percentages."""
        record = coverage_record("/repo/src/a.ts", {1: 1, 2: 0, 3: 0, 4: 1})
        files = {"/repo/src/a.ts": FileCoverage.from_raw("/repo/src/a.ts", record)}

        [entry] = file_breakdown(files)

        assert entry["path"] == "/repo/src/a.ts"
        assert entry["coverage"]["lines"] == 50
        assert entry["totals"]["statements"] == 4
        assert entry["covered"]["statements"] == 2


# =============================================================================
# Threshold Tests
# =============================================================================

class TestThresholdEvaluator:
    """Tests for comparing coverage with thresholds."""

    def test_violation_message(self):
        """Test the message for a metric below its threshold."""
        evaluation = ThresholdEvaluator().evaluate(
            {"lines": 50, "functions": 100, "branches": 50, "statements": 50},
            {"lines": 80},
        )

        assert evaluation.meets is False
        assert evaluation.violations == ["Line coverage (50%) is below threshold (80%)"]

    def test_unconfigured_metrics_are_not_checked(self):
        """Test that a low metric without a threshold is ignored."""
        evaluation = ThresholdEvaluator().evaluate({"lines": 60, "functions": 10}, {"lines": 60})

        assert evaluation.meets is True
        assert evaluation.violations == []

    def test_every_metric_reported(self):
        """Test one violation per failing metric, in metric order."""
        coverage = {"lines": 10, "functions": 20, "branches": 30, "statements": 40}
        thresholds = {"statements": 90, "lines": 90, "branches": 90, "functions": 90}

        evaluation = ThresholdEvaluator().evaluate(coverage, thresholds)

        assert [v.split(" ")[0] for v in evaluation.violations] == [
            "Line", "Function", "Branch", "Statement",
        ]


class TestThresholdSources:
    """Tests for where thresholds come from."""

    def test_parse_thresholds_block(self):
        """Test that out-of-range values are dropped."""
        content = (
            "export default defineConfig({ test: { coverage: "
            "{ thresholds: { lines: 80, functions: 75, branches: 101 } } } })"
        )

        assert parse_thresholds_block(content) == {"lines": 80, "functions": 75}

    def test_no_thresholds_block(self):
        """Test configs without thresholds."""
        assert parse_thresholds_block("export default defineConfig({})") is None

    def test_vitest_config_source(self, tmp_path):
        """Test reading thresholds from vitest.config.ts."""
        (tmp_path / "vitest.config.ts").write_text("coverage: { thresholds: { lines: 70 } }")

        assert VitestConfigThresholdSource().get_thresholds(str(tmp_path)) == {"lines": 70}

    def test_mcp_config_takes_priority(self, tmp_path):
        """Test that vitest.mcp.config.ts wins over vitest.config.ts."""
        (tmp_path / "vitest.config.ts").write_text("thresholds: { lines: 70 }")
        (tmp_path / "vitest.mcp.config.ts").write_text("thresholds: { lines: 95 }")

        assert VitestConfigThresholdSource().get_thresholds(str(tmp_path)) == {"lines": 95}

    def test_missing_config_means_no_thresholds(self, tmp_path):
        """Test a project with no config file."""
        assert VitestConfigThresholdSource().get_thresholds(str(tmp_path)) is None

    def test_configured_source(self):
        """Test explicit thresholds, the single value and no value."""
        assert ConfiguredThresholdSource({"lines": 80}).get_thresholds("/p") == {"lines": 80}
        assert ConfiguredThresholdSource(threshold=60).get_thresholds("/p") == {
            "lines": 60, "functions": 60, "branches": 60, "statements": 60,
        }
        assert ConfiguredThresholdSource(threshold=0).get_thresholds("/p") is None
        assert ConfiguredThresholdSource().get_thresholds("/p") is None

    def test_chained_source_first_answer_wins(self, tmp_path):
        """Test that later sources are only asked when earlier ones have nothing."""
        (tmp_path / "vitest.config.ts").write_text("thresholds: { lines: 70 }")
        chained = ChainedThresholdSource(ConfiguredThresholdSource(), VitestConfigThresholdSource())

        assert chained.get_thresholds(str(tmp_path)) == {"lines": 70}

        chained = ChainedThresholdSource(ConfiguredThresholdSource({"branches": 50}), VitestConfigThresholdSource())
        assert chained.get_thresholds(str(tmp_path)) == {"branches": 50}
