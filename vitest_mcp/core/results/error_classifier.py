"""Turn a raw assertion failure message into a typed ErrorInfo."""

from __future__ import annotations

import json
import logging
import math
import re
from pathlib import Path
from typing import Any, Callable

from ...constants import MAX_STACK_FRAMES, SNIPPET_CONTEXT_LINES
from .models import UNDEFINED, ErrorInfo, ErrorType

logger = logging.getLogger(__name__)


# =============================================================================
# Type detection
# =============================================================================

# Evaluated top to bottom against the first line; the first match wins.
# The last element says whether the matched token is stripped from the message.
TYPE_RULES: list[tuple[Callable[[str], bool], ErrorType, str | None]] = [
    (lambda line: "AssertionError:" in line, "AssertionError", "AssertionError:"),
    (lambda line: "TypeError:" in line, "TypeError", "TypeError:"),
    (lambda line: "ReferenceError:" in line, "ReferenceError", "ReferenceError:"),
    (lambda line: "Test timed out" in line, "TimeoutError", None),
    (lambda line: "Error:" in line, "Error", "Error:"),
]

_EXPECTED_TO_BE = re.compile(
    r"expected\s+(.+?)\s+to\s+(?:be|equal)\s+(.+?)(?:\s+//|$)",
    re.IGNORECASE,
)
_EXPECTED_LINE = re.compile(r"^\s*Expected:[ \t]*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)
_RECEIVED_LINE = re.compile(r"^\s*Received:[ \t]*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)
_DIFF_EXPECTED = re.compile(r"^\s*-\s+(?!Expected\b)(.+?)\s*$", re.MULTILINE)
_DIFF_RECEIVED = re.compile(r"^\s*\+\s+(?!Received\b)(.+?)\s*$", re.MULTILINE)

_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_STACK_FRAME = re.compile(r"^\s*at\s+")
_LINE_COLUMN = r"(\d+):\d+"

# Frames from the runner itself or from installed packages
_NOISY_FRAME_MARKERS = ("node_modules", "vitest", "test-runner", "node:internal")


class ErrorClassifier:
    """Classify failure messages; never raises for any input string."""

    def __init__(self, max_stack_frames: int = MAX_STACK_FRAMES):
        self.max_stack_frames = max_stack_frames

    def classify(self, failure_message: str, source_path: str | None = None) -> ErrorInfo:
        """
        Build an ErrorInfo from the first failure message of an assertion.

        Args:
            failure_message: The raw message, possibly multi-line with a stack
            source_path: File to read a code snippet from (best-effort)
        """
        text = failure_message or ""
        lines = text.split("\n")
        first_line = lines[0].strip() if lines else ""

        error_type: ErrorType = "Error"
        message = first_line
        for predicate, rule_type, token in TYPE_RULES:
            if predicate(first_line):
                error_type = rule_type
                if token:
                    message = first_line.split(token, 1)[1].strip()
                break

        info = ErrorInfo(
            type=error_type,
            message=message or first_line or "Test failed",
            clean_stack=clean_stack(text, self.max_stack_frames),
        )

        if error_type == "AssertionError":
            expected, actual = extract_expected_actual(text)
            info.expected = expected
            info.actual = actual

        if source_path:
            info.code_snippet = code_snippet(text, source_path)

        return info


def extract_expected_actual(message: str) -> tuple[Any, Any]:
    """Pull expected and actual values out of an assertion message."""

    first_line = message.split("\n", 1)[0]
    match = _EXPECTED_TO_BE.search(first_line)
    if match:
        # "expected <actual> to be <expected>"
        return parse_value(match.group(2)), parse_value(match.group(1))

    expected: Any = UNDEFINED
    actual: Any = UNDEFINED

    expected_match = _EXPECTED_LINE.search(message)
    received_match = _RECEIVED_LINE.search(message)
    if expected_match:
        expected = parse_value(expected_match.group(1))
    if received_match:
        actual = parse_value(received_match.group(1))

    if expected_match is None and received_match is None and "- Expected" in message:
        diff_expected = _DIFF_EXPECTED.search(message)
        diff_received = _DIFF_RECEIVED.search(message)
        if diff_expected:
            expected = parse_value(diff_expected.group(1))
        if diff_received:
            actual = parse_value(diff_received.group(1))

    return expected, actual


def parse_value(raw: str) -> Any:
    """
    Interpret a value printed in a failure message.

    Tried in order: strip surrounding quotes, number, boolean/null/undefined
    literal, JSON, and finally the raw string.
    """
    value = raw.strip()
    value = re.sub(r"^['\"`]|['\"`]$", "", value)

    if _NUMBER.match(value):
        if re.fullmatch(r"[+-]?\d+", value):
            return int(value)
        number = float(value)
        # Overflowing literals stay strings
        return number if math.isfinite(number) else value

    literals = {"true": True, "false": False, "null": None, "undefined": UNDEFINED}
    if value in literals:
        return literals[value]

    try:
        return json.loads(value, parse_constant=_reject_constant, parse_float=_finite_float)
    except ValueError:
        return value


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON; keep the printed text instead
    raise ValueError(name)


def _finite_float(text: str) -> float:
    number = float(text)
    if not math.isfinite(number):
        raise ValueError(text)
    return number


def clean_stack(message: str, limit: int = MAX_STACK_FRAMES) -> list[str]:
    """Stack frames worth showing: arrow or "at" lines outside runner internals."""
    frames = []
    for line in message.split("\n"):
        stripped = line.strip()
        if not (stripped.startswith("❯") or _STACK_FRAME.match(line)):
            continue
        if any(marker in line for marker in _NOISY_FRAME_MARKERS):
            continue
        frames.append(stripped)
        if len(frames) >= limit:
            break
    return frames


def code_snippet(
    message: str,
    source_path: str,
    context: int = SNIPPET_CONTEXT_LINES,
) -> list[str] | None:
    """
    Source lines around the failing line, the failing one marked with ❌.

    The line number is taken from a ``<file>:line:col`` reference to the
    source file when present, otherwise from the first ``line:col`` pair.
    Returns None when there is no line number or the file cannot be read.
    """
    name = re.escape(Path(source_path).name)
    match = re.search(name + ":" + _LINE_COLUMN, message) or re.search(_LINE_COLUMN, message)
    if not match:
        return None

    line_number = int(match.group(1))
    try:
        source_lines = Path(source_path).read_text(encoding="utf-8", errors="replace").split("\n")
    except (OSError, ValueError) as e:
        logger.debug("No code snippet for %s: %s", source_path, e)
        return None

    start = max(0, line_number - 1 - context)
    end = min(len(source_lines), line_number + context)

    snippet = []
    for index in range(start, end):
        number = index + 1
        prefix = "❌" if number == line_number else "  "
        snippet.append(f"{number:>2}: {prefix} {source_lines[index]}")
    return snippet or None
