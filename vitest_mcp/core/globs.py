"""Glob matching for path patterns such as ``**/*.{test,spec}.ts``."""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Iterable

_BRACE_GROUP = re.compile(r"\{([^{}]*)\}")


def expand_braces(pattern: str) -> list[str]:
    """``a.{x,y}`` -> ``["a.x", "a.y"]``; nested groups expand left to right."""
    match = _BRACE_GROUP.search(pattern)
    if not match:
        return [pattern]

    head, tail = pattern[:match.start()], pattern[match.end():]
    expanded = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(head + option + tail))
    return expanded


def matches_glob(path: str, pattern: str) -> bool:
    """
    fnmatch with brace expansion; ``*`` also crosses ``/``.

    A leading ``**/`` matches zero or more directories, so ``**/x`` also
    matches a top-level ``x``.
    """
    normalized = path.replace("\\", "/")
    for candidate in expand_braces(pattern):
        if fnmatch.fnmatchcase(normalized, candidate):
            return True
        if candidate.startswith("**/") and fnmatch.fnmatchcase(normalized, candidate[3:]):
            return True
    return False


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    return any(matches_glob(path, pattern) for pattern in patterns)
