"""Reduce a vitest JSON report to a StructuredTestResult."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any

from .error_classifier import ErrorClassifier
from .models import (
    ErrorInfo,
    FailedTest,
    PassedFileSummary,
    StructuredTestResult,
    TestFormat,
    TestSummary,
)

logger = logging.getLogger(__name__)

NAME_SEPARATOR = " › "
SKIPPED_STATUSES = ("skipped", "pending", "todo", "disabled")
SUITE_FAILURE_NAME = "Test file failed to run"


@dataclass
class ConsoleSummary:
    """Counts scraped from the runner's human-readable footer."""
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: int = 0


class TestResultSummarizer:
    """
    Build the summary or detailed result shape from a raw report.

    Every field of the report is optional. Missing counts are derived
    from the assertions, and missing collections are treated as empty.
    """

    __test__ = False

    def __init__(self, classifier: ErrorClassifier | None = None):
        self.classifier = classifier or ErrorClassifier()

    def summarize(self, report: dict[str, Any], format: TestFormat = "summary") -> StructuredTestResult:
        suites = [suite for suite in _suites(report) if isinstance(suite, dict)]
        summary = self._count(report, suites)

        success = report.get("success")
        if isinstance(success, bool):
            status = "success" if success and summary.failed == 0 else "failure"
        else:
            status = "success" if summary.failed == 0 else "failure"

        result = StructuredTestResult(status=status, summary=summary, format=format)

        if format == "detailed":
            result.failed_tests = self._failed_tests(suites)
            result.passed_tests_summary = self._passed_files(suites)
        elif summary.failed > 0 or status == "failure":
            result.failed_test_names = self._failed_names(suites)

        return result

    def fallback(
        self,
        process_succeeded: bool,
        console: ConsoleSummary | None = None,
        format: TestFormat = "summary",
    ) -> StructuredTestResult:
        """Minimal result when no JSON report could be parsed."""

        if console is None:
            return StructuredTestResult(
                status="success" if process_succeeded else "failure",
                format=format,
            )

        summary = _balanced(TestSummary(
            total=console.total,
            passed=console.passed,
            failed=console.failed,
            skipped=console.skipped,
            duration=console.duration,
        ))
        status = "success" if process_succeeded and summary.failed == 0 else "failure"
        return StructuredTestResult(status=status, summary=summary, format=format)

    # =========================================================================
    # Counting
    # =========================================================================

    def _count(self, report: dict[str, Any], suites: list[dict]) -> TestSummary:
        assertions = [a for suite in suites for a in _assertions(suite)]
        statuses = [a.get("status") for a in assertions]

        passed = _as_count(report.get("numPassedTests"), statuses.count("passed"))
        failed = _as_count(report.get("numFailedTests"), statuses.count("failed"))

        if _is_count(report.get("numSkippedTests")):
            skipped = int(report["numSkippedTests"])
        elif _is_count(report.get("numPendingTests")) or _is_count(report.get("numTodoTests")):
            skipped = _as_count(report.get("numPendingTests"), 0) + _as_count(report.get("numTodoTests"), 0)
        else:
            skipped = sum(1 for status in statuses if status in SKIPPED_STATUSES)

        total = _as_count(report.get("numTotalTests"), passed + failed + skipped)

        return _balanced(TestSummary(
            total=total,
            passed=passed,
            failed=failed,
            skipped=skipped,
            duration=_duration(report, suites, assertions),
        ))

    # =========================================================================
    # Output shapes
    # =========================================================================

    def _failed_names(self, suites: list[dict]) -> list[dict]:
        names = []
        for suite in suites:
            file_name = _file_name(suite)
            failing = [a for a in _assertions(suite) if a.get("status") == "failed"]
            for assertion in failing:
                names.append({"file": file_name, "testName": assertion_name(assertion)})
            if not failing and _suite_failure_message(suite):
                names.append({"file": file_name, "testName": SUITE_FAILURE_NAME})
        return names

    def _failed_tests(self, suites: list[dict]) -> list[FailedTest]:
        failed = []
        for suite in suites:
            file_name = _file_name(suite)
            source_path = suite.get("name") if isinstance(suite.get("name"), str) else None
            failing = [a for a in _assertions(suite) if a.get("status") == "failed"]

            for assertion in failing:
                messages = assertion.get("failureMessages")
                first = messages[0] if isinstance(messages, list) and messages else None
                duration = assertion.get("duration")
                failed.append(FailedTest(
                    file=file_name,
                    test_name=assertion_name(assertion),
                    error=self._classify(first, source_path),
                    duration=round(duration, 2) if _is_number(duration) and duration else None,
                ))

            suite_message = _suite_failure_message(suite)
            if not failing and suite_message:
                failed.append(FailedTest(
                    file=file_name,
                    test_name=SUITE_FAILURE_NAME,
                    error=self._classify(suite_message, source_path),
                ))
        return failed

    def _passed_files(self, suites: list[dict]) -> list[PassedFileSummary]:
        summaries = []
        for suite in suites:
            passing = [a for a in _assertions(suite) if a.get("status") == "passed"]
            if not passing:
                continue
            total_duration = sum(a["duration"] for a in passing if _is_number(a.get("duration")))
            summaries.append(PassedFileSummary(
                file=_file_name(suite),
                passed_count=len(passing),
                total_duration=round(total_duration, 2),
            ))
        return summaries

    def _classify(self, message: Any, source_path: str | None) -> ErrorInfo:
        if not message:
            return ErrorInfo(type="Error", message="Test failed")
        try:
            return self.classifier.classify(str(message), source_path)
        except Exception as e:
            logger.warning("Could not classify failure message: %s", e)
            first_line = str(message).split("\n", 1)[0].strip()
            return ErrorInfo(type="Error", message=first_line or "Test failed", raw_error=str(message))


# =============================================================================
# Report helpers
# =============================================================================

def assertion_name(assertion: dict) -> str:
    """``fullName`` when present, else ancestor titles and title joined by ›."""
    full_name = assertion.get("fullName")
    if isinstance(full_name, str) and full_name.strip():
        return full_name

    ancestors = assertion.get("ancestorTitles")
    parts = [str(title) for title in ancestors if title] if isinstance(ancestors, list) else []
    if assertion.get("title"):
        parts.append(str(assertion["title"]))
    return NAME_SEPARATOR.join(parts) or "unnamed test"


def _suites(report: dict[str, Any]) -> list:
    for key in ("testSuites", "testResults"):
        value = report.get(key)
        if isinstance(value, list):
            return value
    return []


def _assertions(suite: dict) -> list[dict]:
    for key in ("assertions", "assertionResults"):
        value = suite.get(key)
        if isinstance(value, list):
            return [a for a in value if isinstance(a, dict)]
    return []


def _suite_failure_message(suite: dict) -> str | None:
    if suite.get("status") != "failed":
        return None
    message = suite.get("message") or suite.get("failureMessage")
    return message if isinstance(message, str) and message.strip() else None


def _file_name(suite: dict) -> str:
    name = suite.get("name")
    if not isinstance(name, str) or not name:
        return "unknown"
    return PurePath(name.replace("\\", "/")).name or name


def _duration(report: dict[str, Any], suites: list[dict], assertions: list[dict]) -> int:
    """Report span, else summed suite spans, else summed assertion durations."""
    start, end = report.get("startTime"), report.get("endTime")
    if _is_number(start) and _is_number(end) and end >= start:
        return round(end - start)

    suite_total = 0.0
    for suite in suites:
        suite_start, suite_end = suite.get("startTime"), suite.get("endTime")
        if _is_number(suite_start) and _is_number(suite_end) and suite_end >= suite_start:
            suite_total += suite_end - suite_start
    if suite_total > 0:
        return round(suite_total)

    return round(sum(a["duration"] for a in assertions if _is_number(a.get("duration"))))


def _balanced(summary: TestSummary) -> TestSummary:
    """Make passed + failed + skipped equal total."""
    accounted = summary.passed + summary.failed + summary.skipped
    if summary.total > accounted:
        summary.skipped += summary.total - accounted
    elif summary.total < accounted:
        summary.total = accounted
    return summary


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_count(value: Any) -> bool:
    return _is_number(value) and value >= 0


def _as_count(value: Any, default: int) -> int:
    return int(value) if _is_count(value) else default


# =============================================================================
# Console footer
# =============================================================================

_ANSI = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
_TESTS_LINE = re.compile(r"^\s*Tests\s+(.+)$", re.MULTILINE)
_STATUS_COUNT = re.compile(r"(\d+)\s+(passed|failed|skipped|todo)")
_TOTAL_COUNT = re.compile(r"\((\d+)\)")
_TIME_LINE = re.compile(r"^\s*(?:Duration|Time)\s+([\d.]+)\s*(ms|s)\b", re.MULTILINE)


def parse_console_summary(output: str | None) -> ConsoleSummary | None:
    """
    Read counts from vitest's footer, e.g. ``Tests  1 failed | 2 passed (3)``.

    Returns None when the output has no ``Tests`` line.
    """
    if not output:
        return None

    text = _ANSI.sub("", output)
    match = _TESTS_LINE.search(text)
    if not match:
        return None

    line = match.group(1)
    counts = {"passed": 0, "failed": 0, "skipped": 0}
    for number, label in _STATUS_COUNT.findall(line):
        key = "skipped" if label == "todo" else label
        counts[key] += int(number)

    total_match = _TOTAL_COUNT.search(line)
    total = int(total_match.group(1)) if total_match else sum(counts.values())

    duration = 0
    time_match = _TIME_LINE.search(text)
    if time_match:
        value = float(time_match.group(1))
        duration = round(value * 1000 if time_match.group(2) == "s" else value)

    return ConsoleSummary(total=total, duration=duration, **counts)
