"""Worker process launching.

Every launch runs one suite in a fresh interpreter process, blocks
until it exits and hands back its stdout as text.  Output is decoded
here but not parsed; see :mod:`packbench.bench.protocol`.

Workers receive the inherited environment plus:

- ``BENCHMARK_CWD``: the directory suites read their inputs from.
- ``BENCHMARK_ENV=production``: production-like run mode.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import time
from pathlib import Path
from typing import Protocol

from packbench.bench.config import RunConfig
from packbench.bench.protocol import MalformedResultError

log = logging.getLogger("packbench")

CWD_VARIABLE = "BENCHMARK_CWD"
MODE_VARIABLE = "BENCHMARK_ENV"
PRODUCTION_MODE = "production"

# Keep error messages readable when a worker dumps a long traceback.
_STDERR_TAIL = 2000


class LaunchError(RuntimeError):
    """The worker process could not be started or exited abnormally."""

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class Launcher(Protocol):
    """Anything able to run one suite and return its stdout."""

    def launch(self, suite: Path, env: dict[str, str]) -> str: ...


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


def build_worker_env(config: RunConfig) -> dict[str, str]:
    """Build the complete environment for a worker process.

    Starts from the inherited ``os.environ``, adds the benchmark
    variables and layers the configured overlay on top.
    """
    env = dict(os.environ)
    env["PYTHONDONTWRITEBYTECODE"] = "1"
    env.update(config.env)
    env[CWD_VARIABLE] = str(config.working_dir)
    env[MODE_VARIABLE] = PRODUCTION_MODE
    return env


# ---------------------------------------------------------------------------
# WorkerLauncher
# ---------------------------------------------------------------------------


class WorkerLauncher:
    """Runs suites as ``<python> <suite>`` subprocesses.

    Args:
        python: Interpreter used to run each suite.
        timeout: Optional per-launch limit in seconds.  A worker that
            exceeds it is killed with its process group and reported as
            a LaunchError.  None waits indefinitely.
    """

    def __init__(self, python: str, *, timeout: float | None = None) -> None:
        self.python = python
        self.timeout = timeout

    def launch(self, suite: Path, env: dict[str, str]) -> str:
        """Run *suite* to completion and return its stdout.

        Raises:
            LaunchError: If the process cannot start, exits non-zero,
                is killed, or exceeds the timeout.
            MalformedResultError: If a clean exit left stdout that is
                not valid UTF-8.
        """
        command = [self.python, str(suite)]
        log.debug("Launching %s", " ".join(command))

        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                command,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            raise LaunchError(f"Could not start {suite.name}: {exc}") from exc

        try:
            stdout, stderr = proc.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            _kill_process_group(proc.pid)
            try:
                _, stderr = proc.communicate(timeout=5)
            except subprocess.TimeoutExpired:
                proc.kill()
                _, stderr = proc.communicate()
            raise LaunchError(
                f"{suite.name} timed out after {self.timeout}s",
                exit_code=proc.returncode,
                stderr=_tail(stderr),
            ) from None

        log.debug("%s exited %d after %.3fs", suite.name, proc.returncode, time.monotonic() - start)

        if proc.returncode < 0:
            try:
                sig_name = signal.Signals(-proc.returncode).name
            except ValueError:
                sig_name = f"signal {-proc.returncode}"
            raise LaunchError(
                f"{suite.name} was killed by {sig_name}",
                exit_code=proc.returncode,
                stderr=_tail(stderr),
            )
        if proc.returncode != 0:
            raise LaunchError(
                f"{suite.name} exited with code {proc.returncode}",
                exit_code=proc.returncode,
                stderr=_tail(stderr),
            )

        try:
            return stdout.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedResultError(f"Suite output is not valid UTF-8: {exc}") from exc


def _kill_process_group(pid: int) -> None:
    """Attempt to kill the entire process group on timeout."""
    try:
        os.killpg(os.getpgid(pid), signal.SIGKILL)
    except (ProcessLookupError, PermissionError, OSError):
        pass


def _tail(data: bytes | None) -> str:
    # Lossy decode; stderr only feeds error messages.
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")[-_STDERR_TAIL:]
