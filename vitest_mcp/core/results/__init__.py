"""Test results module - classify failures and summarize reports."""

from .error_classifier import ErrorClassifier, clean_stack, code_snippet, parse_value
from .models import (
    UNDEFINED,
    VALID_FORMATS,
    ErrorInfo,
    FailedTest,
    PassedFileSummary,
    StructuredTestResult,
    TestFormat,
    TestSummary,
)
from .summarizer import ConsoleSummary, TestResultSummarizer, parse_console_summary, assertion_name

__all__ = [
    "ErrorClassifier",
    "clean_stack",
    "code_snippet",
    "parse_value",
    "UNDEFINED",
    "VALID_FORMATS",
    "ErrorInfo",
    "FailedTest",
    "PassedFileSummary",
    "StructuredTestResult",
    "TestFormat",
    "TestSummary",
    "ConsoleSummary",
    "TestResultSummarizer",
    "parse_console_summary",
    "assertion_name",
]
