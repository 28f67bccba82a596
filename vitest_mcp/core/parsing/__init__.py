"""Report parsing - pull JSON reports out of runner output."""

from .report_parser import (
    RawReportParser,
    looks_like_test_report,
    parse_coverage_report,
    parse_test_report,
)

__all__ = [
    "RawReportParser",
    "looks_like_test_report",
    "parse_coverage_report",
    "parse_test_report",
]
