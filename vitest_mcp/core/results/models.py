"""Dataclasses for structured test results handed back to the agent."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

TestFormat = Literal["summary", "detailed"]
ResultStatus = Literal["success", "failure", "error"]
ErrorType = Literal["AssertionError", "TypeError", "ReferenceError", "TimeoutError", "Error"]

VALID_FORMATS: tuple[str, ...] = ("summary", "detailed")


class _Undefined:
    """Marker for a value the failure message spelled as ``undefined``."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


# Also used for "not extracted"; both are left out of the serialized result
UNDEFINED: Any = _Undefined()


@dataclass
class ErrorInfo:
    """A classified failure: type, message, optional expected/actual and clean stack."""

    type: ErrorType = "Error"
    message: str = ""
    expected: Any = UNDEFINED
    actual: Any = UNDEFINED
    code_snippet: list[str] | None = None
    clean_stack: list[str] = field(default_factory=list)
    raw_error: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {"type": self.type, "message": self.message}
        if self.expected is not UNDEFINED:
            result["expected"] = self.expected
        if self.actual is not UNDEFINED:
            result["actual"] = self.actual
        if self.code_snippet:
            result["codeSnippet"] = self.code_snippet
        result["cleanStack"] = self.clean_stack
        if self.raw_error is not None:
            result["rawError"] = self.raw_error
        return result


@dataclass
class FailedTest:
    """One failing assertion with its classified error (detailed format)."""

    file: str
    test_name: str
    error: ErrorInfo
    duration: float | None = None

    def to_dict(self) -> dict:
        result: dict[str, Any] = {"file": self.file, "testName": self.test_name}
        if self.duration is not None:
            result["duration"] = self.duration
        result["error"] = self.error.to_dict()
        return result


@dataclass
class PassedFileSummary:
    """Passing assertions of one file, folded into a count and total duration."""

    file: str
    passed_count: int
    total_duration: float

    def to_dict(self) -> dict:
        return {
            "file": self.file,
            "passedCount": self.passed_count,
            "totalDuration": self.total_duration,
        }


@dataclass
class TestSummary:
    """Counts for one run. Invariant: passed + failed + skipped == total."""

    __test__ = False

    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: int = 0

    @property
    def pass_rate(self) -> float:
        if self.total <= 0:
            return 0
        return round(self.passed / self.total * 100, 2)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration": self.duration,
            "passRate": self.pass_rate,
        }


@dataclass
class StructuredTestResult:
    """
    Final run_tests contract.

    ``failed_test_names`` is only filled for the summary format;
    ``failed_tests`` and ``passed_tests_summary`` only for detailed.
    """

    status: ResultStatus
    summary: TestSummary = field(default_factory=TestSummary)
    format: TestFormat = "summary"
    failed_test_names: list[dict] | None = None
    failed_tests: list[FailedTest] | None = None
    passed_tests_summary: list[PassedFileSummary] | None = None
    command: str = ""
    duration: int = 0
    error: str | None = None
    error_code: str | None = None

    @property
    def success(self) -> bool:
        return self.status == "success"

    @classmethod
    def failure(
        cls,
        message: str,
        error_code: str | None = None,
        format: TestFormat = "summary",
        command: str = "",
        duration: int = 0,
    ) -> StructuredTestResult:
        """Error-shaped result with zero counts."""
        return cls(
            status="error",
            format=format,
            command=command,
            duration=duration,
            error=message,
            error_code=error_code,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization (camelCase keys)."""
        result: dict[str, Any] = {
            "success": self.success,
            "status": self.status,
            "format": self.format,
            "summary": self.summary.to_dict(),
        }
        if self.failed_test_names:
            result["failedTestNames"] = self.failed_test_names
        if self.failed_tests:
            result["failedTests"] = [test.to_dict() for test in self.failed_tests]
        if self.passed_tests_summary:
            result["passedTestsSummary"] = [entry.to_dict() for entry in self.passed_tests_summary]
        result["command"] = self.command
        result["duration"] = self.duration
        if self.error is not None:
            result["error"] = self.error
        if self.error_code is not None:
            result["errorCode"] = self.error_code
        return result
