"""Extract a JSON report object from noisy runner stdout.

The JSON reporter normally prints the whole report on a single line, but
plugins, warnings and console output from the tests themselves can surround
it. Parsing runs in two passes:

1. Line scan: the first line that starts with ``{`` and carries one of the
   report markers is parsed on its own.
2. Brace scan: starting at each ``{`` in turn, a depth counter finds the
   matching ``}`` and the enclosed text is parsed. The first candidate that
   decodes to an object wins.

Braces inside JSON string values are counted like any other brace, so a
string containing an unbalanced ``{`` can make the scanner miss a report.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ...constants import COVERAGE_REPORT_MARKERS, TEST_REPORT_MARKERS

logger = logging.getLogger(__name__)

# Keys that identify a test report even when the version marker is missing
_TEST_REPORT_KEYS = ("testResults", "testSuites", "numTotalTests")


class RawReportParser:
    """Parse the first structurally valid JSON report out of raw text."""

    def __init__(self, markers: tuple[str, ...] = TEST_REPORT_MARKERS):
        self.markers = markers

    def parse(self, raw_text: str | None) -> dict[str, Any] | None:
        """Return the report object, or None when nothing parseable is found."""

        if not raw_text or not raw_text.strip():
            return None

        report = self._scan_lines(raw_text)
        if report is not None:
            return report

        return self._scan_braces(raw_text)

    def _scan_lines(self, raw_text: str) -> dict[str, Any] | None:
        """Try single lines that look like a complete report."""

        for line in raw_text.splitlines():
            stripped = line.strip()
            if not stripped.startswith("{"):
                continue
            if not any(marker in stripped for marker in self.markers):
                continue

            parsed = _loads_object(stripped)
            if parsed is not None:
                return parsed

        return None

    def _scan_braces(self, raw_text: str) -> dict[str, Any] | None:
        """Depth-count from each opening brace and parse the balanced span."""

        start = raw_text.find("{")
        while start != -1:
            end = _find_balanced_end(raw_text, start)
            if end is None:
                # Unbalanced from here on; nothing later can close either
                logger.debug("Unbalanced JSON candidate at offset %d", start)
                return None

            parsed = _loads_object(raw_text[start:end])
            if parsed is not None:
                return parsed

            start = raw_text.find("{", start + 1)

        return None


def _find_balanced_end(text: str, start: int) -> int | None:
    """Return the index just past the brace that closes ``text[start]``."""

    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def _loads_object(candidate: str) -> dict[str, Any] | None:
    """Strict JSON decode that only accepts objects and never raises."""

    try:
        parsed = json.loads(candidate)
    except (ValueError, RecursionError):
        return None
    return parsed if isinstance(parsed, dict) else None


def looks_like_test_report(report: dict[str, Any] | None) -> bool:
    """True when the object carries any of the test report keys."""

    if not report:
        return False
    return any(key in report for key in _TEST_REPORT_KEYS)


def parse_test_report(raw_text: str | None) -> dict[str, Any] | None:
    """Parse a test-run report from stdout."""

    report = RawReportParser(TEST_REPORT_MARKERS).parse(raw_text)
    if report is not None and not looks_like_test_report(report):
        logger.debug("Parsed JSON has no test report keys: %s", sorted(report)[:10])
        return None
    return report


def parse_coverage_report(raw_text: str | None) -> dict[str, Any] | None:
    """Parse a coverage-carrying report from stdout."""

    return RawReportParser(COVERAGE_REPORT_MARKERS + TEST_REPORT_MARKERS).parse(raw_text)
