"""
Tests for command building and subprocess execution.

The executor tests spawn the current Python interpreter as a stand-in
for the test runner, so they need no Node toolchain.
"""

import asyncio
import os
import sys

import pytest

from vitest_mcp.core.runner import (
    COVERAGE_RUN_FLAGS,
    ProcessRunner,
    build_coverage_command,
    build_test_command,
    candidate_test_files,
    display_command,
    find_test_file,
)


# =============================================================================
# Command building
# =============================================================================

class TestCommands:
    """Tests for test and coverage command lines."""

    def test_build_test_command(self):
        """Test the default runner invocation."""
        assert build_test_command("src/math.test.ts") == [
            "npx", "vitest", "run", "src/math.test.ts", "--reporter=json",
        ]

    def test_custom_runner_command(self):
        """Test a configured runner prefix."""
        argv = build_test_command("src", ("pnpm", "exec", "vitest", "run"))

        assert argv[:4] == ["pnpm", "exec", "vitest", "run"]

    def test_coverage_command_for_file(self):
        """Test the full flag order for a source file with a matching test."""
        argv = build_coverage_command(
            "src/math.ts",
            is_directory=False,
            exclude=["**/*.stories.*"],
            test_selection="src/math.test.ts",
            thresholds={"lines": 80, "branches": 0},
        )

        assert argv == [
            "npx", "vitest", "run", *COVERAGE_RUN_FLAGS,
            "--exclude", "**/*.stories.*",
            "src/math.test.ts",
            "--coverage",
            "--coverage.include", "src/math.ts",
            "--coverage.exclude", "**/*.stories.*",
            "--passWithNoTests",
            "--reporter=json",
            "--coverage.thresholds.lines=80",
        ]

    def test_coverage_command_for_directory(self):
        """Test that a directory selects its tests and includes everything below it."""
        argv = build_coverage_command("src/utils/", is_directory=True)

        assert "src/utils/" in argv
        assert argv[argv.index("--coverage.include") + 1] == "src/utils/**"
        assert argv.index("src/utils/") < argv.index("--coverage")

    def test_coverage_command_without_selection(self):
        """Test a file target with no test file: the whole suite runs."""
        argv = build_coverage_command("src/orphan.ts", is_directory=False)

        assert argv[argv.index("--coverage") - 1] == COVERAGE_RUN_FLAGS[-1]
        assert not any(flag.startswith("--coverage.thresholds") for flag in argv)

    def test_display_command_quotes(self):
        """Test shell quoting of paths with spaces."""
        assert display_command(["npx", "vitest", "run", "src/a b.ts"]) == "npx vitest run 'src/a b.ts'"


class TestTestFileLookup:
    """Tests for finding the test file of a source file."""

    def test_candidates_keep_extension(self, tmp_path):
        """Test that candidates share the source extension."""
        candidates = candidate_test_files(str(tmp_path / "src" / "Button.tsx"), str(tmp_path))

        assert len(candidates) == 8
        assert candidates[0].name == "Button.test.tsx"
        assert all(c.suffix == ".tsx" for c in candidates)

    def test_sibling_test_preferred(self, project_dir):
        """Test that the sibling test wins over __tests__."""
        (project_dir / "src" / "__tests__").mkdir()
        (project_dir / "src" / "__tests__" / "math.test.ts").write_text("")

        found = find_test_file(str(project_dir / "src" / "math.ts"), str(project_dir))

        assert found == "src/math.test.ts"

    def test_tests_directory(self, project_dir):
        """Test the __tests__ folder when there is no sibling."""
        (project_dir / "src" / "calc.ts").write_text("")
        (project_dir / "src" / "__tests__").mkdir()
        (project_dir / "src" / "__tests__" / "calc.spec.ts").write_text("")

        found = find_test_file(str(project_dir / "src" / "calc.ts"), str(project_dir))

        assert found == "src/__tests__/calc.spec.ts"

    def test_no_test_file(self, project_dir):
        """Test a source file without tests."""
        (project_dir / "src" / "orphan.ts").write_text("")

        assert find_test_file(str(project_dir / "src" / "orphan.ts"), str(project_dir)) is None


# =============================================================================
# Process execution
# =============================================================================

def python(code):
    return [sys.executable, "-c", code]


class TestProcessRunner:
    """Tests for running commands with a timeout."""

    @pytest.mark.asyncio
    async def test_captures_output_and_exit_code(self, tmp_path):
        """Test stdout, stderr and a non-zero exit code."""
        code = "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"

        output = await ProcessRunner().execute(python(code), str(tmp_path), 10_000)

        assert output.stdout.strip() == "out"
        assert output.stderr.strip() == "err"
        assert output.exit_code == 3
        assert output.timed_out is False
        assert output.success is False

    @pytest.mark.asyncio
    async def test_runs_in_cwd_with_env_overrides(self, tmp_path):
        """Test the working directory and the non-interactive environment."""
        code = "import os; print(os.getcwd()); print(os.environ['CI'], os.environ['NO_COLOR'])"

        output = await ProcessRunner().execute(python(code), str(tmp_path), 10_000)

        cwd, env = output.stdout.strip().splitlines()
        assert os.path.realpath(cwd) == os.path.realpath(tmp_path)
        assert env == "true 1"
        assert output.success is True

    @pytest.mark.asyncio
    async def test_timeout_keeps_partial_output(self, tmp_path):
        """Test that a slow command is stopped and reported with exit 124."""
        code = "import time; print('partial', flush=True); time.sleep(30)"

        output = await ProcessRunner(kill_grace_ms=500).execute(python(code), str(tmp_path), 1_000)

        assert output.timed_out is True
        assert output.exit_code == 124
        assert "partial" in output.stdout
        assert "timed out after 1 seconds" in output.stderr
        assert output.duration < 10_000

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    async def test_kills_process_ignoring_terminate(self, tmp_path):
        """Test escalation to kill after the grace period."""
        code = (
            "import signal, time; signal.signal(signal.SIGTERM, signal.SIG_IGN); "
            "print('ready', flush=True); time.sleep(30)"
        )

        output = await ProcessRunner(kill_grace_ms=200).execute(python(code), str(tmp_path), 1_000)

        assert output.timed_out is True
        assert output.duration < 10_000

    @pytest.mark.asyncio
    async def test_cancel_kills_and_reaps_process(self, tmp_path, monkeypatch):
        """Test that cancelling a run leaves no child process behind."""
        spawned = []
        spawn = asyncio.create_subprocess_exec

        async def recording_spawn(*args, **kwargs):
            process = await spawn(*args, **kwargs)
            spawned.append(process)
            return process

        monkeypatch.setattr(asyncio, "create_subprocess_exec", recording_spawn)
        task = asyncio.create_task(
            ProcessRunner().execute(python("import time; time.sleep(30)"), str(tmp_path), 60_000)
        )
        while not spawned:
            await asyncio.sleep(0.01)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert spawned[0].returncode is not None

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path):
        """Test that a spawn failure is reported, not raised."""
        output = await ProcessRunner().execute(["definitely-not-a-real-binary-xyz"], str(tmp_path), 1_000)

        assert output.exit_code == 1
        assert output.stderr.startswith("Process error:")

    @pytest.mark.asyncio
    async def test_missing_cwd(self, tmp_path):
        """Test a working directory that does not exist."""
        output = await ProcessRunner().execute(python("pass"), str(tmp_path / "gone"), 1_000)

        assert output.exit_code == 1
        assert output.stderr.startswith("Process error:")

    @pytest.mark.asyncio
    async def test_empty_command(self, tmp_path):
        """Test that an empty argv is rejected without spawning."""
        output = await ProcessRunner().execute([], str(tmp_path), 1_000)

        assert output.exit_code == 1
        assert output.success is False
