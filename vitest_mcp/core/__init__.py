"""Core domain logic: parse runner output, summarize results and reconcile coverage."""

from .coverage import CoverageReconciler, ProcessedCoverageResult, ThresholdEvaluator
from .parsing import RawReportParser, parse_coverage_report, parse_test_report
from .project import ProjectContext, ProjectLocator
from .results import ErrorClassifier, StructuredTestResult, TestResultSummarizer
from .runner import ProcessOutput, ProcessRunner

__all__ = [
    # Parsing
    "RawReportParser",
    "parse_test_report",
    "parse_coverage_report",
    # Results
    "ErrorClassifier",
    "StructuredTestResult",
    "TestResultSummarizer",
    # Coverage
    "CoverageReconciler",
    "ProcessedCoverageResult",
    "ThresholdEvaluator",
    # Runner
    "ProcessOutput",
    "ProcessRunner",
    # Project
    "ProjectContext",
    "ProjectLocator",
]
