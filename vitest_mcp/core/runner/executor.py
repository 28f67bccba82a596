"""Run the test runner as a subprocess with a hard wall-clock timeout."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from ...constants import (
    KILL_GRACE_MS,
    RUNNER_ENV_OVERRIDES,
    SPAWN_FAILURE_EXIT_CODE,
    TIMEOUT_EXIT_CODE,
)

logger = logging.getLogger(__name__)

_READ_CHUNK_BYTES = 64 * 1024


@dataclass
class ProcessOutput:
    """Captured output of one runner process."""
    stdout: str
    stderr: str
    exit_code: int
    timed_out: bool = False
    duration: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class ProcessRunner:
    """
    Spawn a command, stream its output and stop it on timeout.

    ``execute`` never raises for process problems: spawn errors come back
    as exit code 1 and timeouts as exit code 124, each with an explanatory
    stderr. Output read before a timeout is kept.
    """

    def __init__(
        self,
        env_overrides: Mapping[str, str] = RUNNER_ENV_OVERRIDES,
        kill_grace_ms: int = KILL_GRACE_MS,
    ):
        self.env_overrides = dict(env_overrides)
        self.kill_grace_ms = kill_grace_ms

    def environment(self) -> dict[str, str]:
        """Inherited environment with non-interactive overrides applied."""
        return {**os.environ, **self.env_overrides}

    async def execute(self, argv: Sequence[str], cwd: str, timeout_ms: int) -> ProcessOutput:
        start = time.monotonic()
        logger.debug("Executing %s in %s (timeout %sms)", list(argv), cwd, timeout_ms)

        if not argv:
            return ProcessOutput(
                stdout="",
                stderr="Process error: empty command",
                exit_code=SPAWN_FAILURE_EXIT_CODE,
            )

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL,
                env=self.environment(),
            )
        except (OSError, ValueError) as e:
            logger.warning("Could not start %s: %s", argv[0], e)
            return ProcessOutput(
                stdout="",
                stderr=f"Process error: {e}",
                exit_code=SPAWN_FAILURE_EXIT_CODE,
                duration=_elapsed_ms(start),
            )

        stdout_chunks: list[bytes] = []
        stderr_chunks: list[bytes] = []

        async def communicate() -> int:
            await asyncio.gather(
                _drain(process.stdout, stdout_chunks),
                _drain(process.stderr, stderr_chunks),
            )
            return await process.wait()

        try:
            exit_code = await asyncio.wait_for(communicate(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            await self._stop(process)
            seconds = timeout_ms / 1000
            logger.warning("Command timed out after %gs: %s", seconds, list(argv))
            stderr = _decode(stderr_chunks)
            message = (
                f"Command timed out after {seconds:g} seconds. "
                "Try running more specific tests or increase the timeout."
            )
            return ProcessOutput(
                stdout=_decode(stdout_chunks),
                stderr=f"{stderr}\n{message}" if stderr else message,
                exit_code=TIMEOUT_EXIT_CODE,
                timed_out=True,
                duration=_elapsed_ms(start),
            )
        except asyncio.CancelledError:
            _kill(process)
            # Reap the child even while this task is being cancelled
            await asyncio.shield(process.wait())
            raise

        return ProcessOutput(
            stdout=_decode(stdout_chunks),
            stderr=_decode(stderr_chunks),
            exit_code=exit_code if exit_code is not None else SPAWN_FAILURE_EXIT_CODE,
            duration=_elapsed_ms(start),
        )

    async def _stop(self, process: asyncio.subprocess.Process) -> None:
        """Terminate, then kill if the process ignores it for the grace period."""
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=self.kill_grace_ms / 1000)
        except asyncio.TimeoutError:
            logger.warning("Process %s ignored terminate, killing it", process.pid)
            _kill(process)
            await process.wait()


async def _drain(stream: asyncio.StreamReader | None, chunks: list[bytes]) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_READ_CHUNK_BYTES)
        if not chunk:
            break
        chunks.append(chunk)


def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass


def _decode(chunks: list[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")


def _elapsed_ms(start: float) -> int:
    return round((time.monotonic() - start) * 1000)
