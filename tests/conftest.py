"""Shared fixtures: a throwaway JS project and a runner that never spawns."""

import json

import pytest

from vitest_mcp.core.project import ProjectContext
from vitest_mcp.core.runner import ProcessOutput


class FakeProcessRunner:
    """Returns a canned ProcessOutput and records every call."""

    def __init__(self, output=None, on_execute=None):
        self.output = output or ProcessOutput(stdout="", stderr="", exit_code=0)
        self.on_execute = on_execute
        self.calls = []

    async def execute(self, argv, cwd, timeout_ms):
        self.calls.append({"argv": list(argv), "cwd": cwd, "timeout_ms": timeout_ms})
        if self.on_execute:
            self.on_execute(argv, cwd)
        return self.output


def istanbul_record(path, statements, functions=None, branches=None):
    """
    Minimal Istanbul file record.

    ``statements`` maps a line to its hit count, ``functions`` maps a name
    to (line, hits) and ``branches`` maps a line to its arm counts.
    """
    functions = functions or {}
    branches = branches or {}

    def loc(line):
        return {"start": {"line": line, "column": 0}, "end": {"line": line, "column": 10}}

    return {
        "path": path,
        "statementMap": {str(i): loc(line) for i, line in enumerate(statements)},
        "s": {str(i): hits for i, hits in enumerate(statements.values())},
        "fnMap": {
            str(i): {"name": name, "decl": loc(line), "loc": loc(line)}
            for i, (name, (line, _)) in enumerate(functions.items())
        },
        "f": {str(i): hits for i, (_, hits) in enumerate(functions.values())},
        "branchMap": {
            str(i): {"loc": loc(line), "type": "if", "locations": [loc(line) for _ in arms]}
            for i, (line, arms) in enumerate(branches.items())
        },
        "b": {str(i): list(arms) for i, arms in enumerate(branches.values())},
    }


@pytest.fixture
def fake_runner():
    return FakeProcessRunner()


@pytest.fixture
def project_dir(tmp_path):
    """A small vitest project: vitest installed, one source file and its sibling test."""
    root = tmp_path / "app"
    root.mkdir()
    (root / "package.json").write_text(json.dumps({"name": "app"}))
    vitest = root / "node_modules" / "vitest"
    vitest.mkdir(parents=True)
    (vitest / "package.json").write_text(json.dumps({"name": "vitest", "version": "3.2.4"}))
    src = root / "src"
    src.mkdir()
    (src / "math.ts").write_text("export const add = (a: number, b: number) => a + b;\n")
    (src / "math.test.ts").write_text(
        "import { add } from './math';\n"
        "test('adds', () => {\n"
        "  expect(add(2, 2)).toBe(5);\n"
        "});\n"
    )
    return root.resolve()


@pytest.fixture
def context(project_dir):
    return ProjectContext(str(project_dir))


@pytest.fixture
def make_report():
    """Factory for vitest JSON reports with one suite."""

    def _make(assertions, suite_name="/project/src/math.test.ts", **fields):
        suite_status = "failed" if any(a.get("status") == "failed" for a in assertions) else "passed"
        report = {
            "version": "1.6.0",
            "numTotalTests": len(assertions),
            "numPassedTests": sum(1 for a in assertions if a.get("status") == "passed"),
            "numFailedTests": sum(1 for a in assertions if a.get("status") == "failed"),
            "numPendingTests": 0,
            "numTodoTests": 0,
            "success": suite_status == "passed",
            "startTime": 1000,
            "endTime": 1250,
            "testResults": [{
                "name": suite_name,
                "status": suite_status,
                "assertionResults": assertions,
            }],
        }
        report.update(fields)
        return report

    return _make


@pytest.fixture
def runner_with():
    """Build a FakeProcessRunner around the given output."""

    def _make(stdout="", stderr="", exit_code=0, timed_out=False, duration=0, on_execute=None):
        output = ProcessOutput(
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
            timed_out=timed_out,
            duration=duration,
        )
        return FakeProcessRunner(output, on_execute=on_execute)

    return _make


@pytest.fixture
def coverage_record():
    return istanbul_record
