"""Build vitest command lines for test and coverage runs."""

from __future__ import annotations

import os
import re
import shlex
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

from ...constants import COVERAGE_METRICS, DEFAULT_RUNNER_COMMAND, JSON_REPORTER_FLAG

_SCRIPT_EXTENSION = re.compile(r"\.(tsx?|jsx?|mjs|cjs)$")

COVERAGE_RUN_FLAGS: tuple[str, ...] = (
    "--browser.headless=true",
    "--ui=false",
    "--coverage.clean=true",
    "--coverage.cleanOnRerun=true",
)


def build_test_command(
    relative_target: str,
    runner_command: Sequence[str] = DEFAULT_RUNNER_COMMAND,
) -> list[str]:
    """``npx vitest run <target> --reporter=json``"""
    return [*runner_command, relative_target, JSON_REPORTER_FLAG]


def build_coverage_command(
    relative_target: str,
    *,
    is_directory: bool,
    exclude: Iterable[str] = (),
    test_selection: str | None = None,
    thresholds: Mapping[str, float] | None = None,
    runner_command: Sequence[str] = DEFAULT_RUNNER_COMMAND,
) -> list[str]:
    """
    Assemble a coverage run for one source file or directory.

    Args:
        relative_target: Target path relative to the project root
        is_directory: Directory targets select every test below them
        exclude: Globs passed both as test and coverage excludes
        test_selection: Test file to run for a source file target; when
            None for a file target, vitest runs the whole suite
        thresholds: Positive per-metric thresholds forwarded to vitest
    """
    exclude = list(exclude)
    command = [*runner_command, *COVERAGE_RUN_FLAGS]

    for pattern in exclude:
        command.extend(["--exclude", pattern])

    if is_directory:
        command.append(relative_target)
    elif test_selection:
        command.append(test_selection)

    command.append("--coverage")
    include = relative_target.rstrip("/") + "/**" if is_directory else relative_target
    command.extend(["--coverage.include", include])

    for pattern in exclude:
        command.extend(["--coverage.exclude", pattern])

    command.append("--passWithNoTests")
    command.append(JSON_REPORTER_FLAG)

    for metric in COVERAGE_METRICS:
        value = (thresholds or {}).get(metric)
        if value is not None and value > 0:
            command.append(f"--coverage.thresholds.{metric}={_fmt(value)}")

    return command


def candidate_test_files(source_path: str, project_root: str) -> list[Path]:
    """Where the tests for a source file conventionally live, most specific first."""

    path = Path(source_path)
    match = _SCRIPT_EXTENSION.search(path.name)
    extension = match.group(1) if match else "ts"
    stem = _SCRIPT_EXTENSION.sub("", path.name)
    parent = path.parent
    root = Path(project_root)

    return [
        parent / f"{stem}.test.{extension}",
        parent / f"{stem}.spec.{extension}",
        parent / "__tests__" / f"{stem}.test.{extension}",
        parent / "__tests__" / f"{stem}.spec.{extension}",
        parent / "tests" / f"{stem}.test.{extension}",
        parent / "tests" / f"{stem}.spec.{extension}",
        root / "tests" / f"{stem}.test.{extension}",
        root / "__tests__" / f"{stem}.test.{extension}",
    ]


def find_test_file(source_path: str, project_root: str) -> str | None:
    """First existing test file for a source file, relative to the project root."""

    for candidate in candidate_test_files(source_path, project_root):
        if candidate.is_file():
            return Path(os.path.relpath(candidate, project_root)).as_posix()
    return None


def display_command(argv: Sequence[str]) -> str:
    """Shell-quoted command line for the result's ``command`` field."""
    return shlex.join(argv)


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
