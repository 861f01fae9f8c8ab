"""Benchmark execution engine.

Orchestrates, strictly sequentially:
1. Configuration validation and suite discovery
2. Packs: ``launches`` launches of one suite, reduced to a PackResult
3. Retries: whole packs re-run while the time deviation is too high
4. Incremental result writing and reporting

Launches are never run concurrently so that one suite's CPU and memory
pressure cannot leak into another's measurements.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from packbench.bench.config import RunConfig, ensure_valid
from packbench.bench.launcher import Launcher, WorkerLauncher, build_worker_env
from packbench.bench.outcome import LaunchFailure, LaunchSuccess, attempt_launch
from packbench.bench.protocol import MEMORY_UNITS, TIME_UNITS
from packbench.bench.results import (
    RESULTS_FILE,
    PackResult,
    RunMeta,
    append_pack_result,
    save_run,
    write_meta,
)
from packbench.bench.stats import build_measure
from packbench.bench.suites import discover_suites, suite_name

log = logging.getLogger("packbench")


# ---------------------------------------------------------------------------
# Progress callback
# ---------------------------------------------------------------------------


@dataclass
class BenchProgress:
    """Progress info passed to the callback after every launch."""

    suite: str
    attempt: int  # 1-based
    launch: int  # 1-based
    total_launches: int
    status: str  # "ok", or the failure kind
    detail: str = ""


ProgressCallback = Callable[[BenchProgress], None]
ReportCallback = Callable[[PackResult], None]


def _default_progress(progress: BenchProgress) -> None:
    """Default progress callback: log at debug level."""
    line = (
        f"  {progress.suite} attempt {progress.attempt} "
        f"launch {progress.launch}/{progress.total_launches} [{progress.status}]"
    )
    if progress.detail:
        line += f" {progress.detail}"
    log.debug(line)


# ---------------------------------------------------------------------------
# PackRunner
# ---------------------------------------------------------------------------


class PackRunner:
    """Runs one suite ``config.launches`` times and reduces the samples.

    Successful launches contribute their time and memory; failed ones
    contribute a zero to both, so every Measure holds exactly
    ``launches`` samples.
    """

    def __init__(
        self,
        config: RunConfig,
        launcher: Launcher,
        *,
        env: dict[str, str] | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self.launcher = launcher
        self.env = env if env is not None else build_worker_env(config)
        self.progress = progress_callback or _default_progress

    def run_pack(self, suite: Path, attempt: int, *, name: str | None = None) -> PackResult:
        """Run a full pack.

        Args:
            suite: The suite to launch.
            attempt: Number of packs already run for this suite; the
                result's ``retries`` is ``attempt + 1``.
            name: Display name, defaults to the suite's file name.
        """
        display_name = name or suite.name
        errors = 0
        entries = 0
        times: list[float] = []
        memory: list[float] = []

        for index in range(self.config.launches):
            outcome = attempt_launch(self.launcher, suite, self.env)

            if isinstance(outcome, LaunchSuccess):
                observation = outcome.observation
                entries = observation.matches
                times.append(observation.time)
                memory.append(observation.memory)
                status, detail = "ok", f"{observation.time:.3f}{TIME_UNITS}"
            elif isinstance(outcome, LaunchFailure):
                errors += 1
                times.append(0.0)
                memory.append(0.0)
                status, detail = outcome.kind, outcome.message
                log.warning(
                    "%s: launch %d/%d failed (%s): %s",
                    display_name,
                    index + 1,
                    self.config.launches,
                    outcome.kind,
                    outcome.message,
                )
            else:
                raise TypeError(f"Unexpected launch outcome: {outcome!r}")

            self.progress(
                BenchProgress(
                    suite=display_name,
                    attempt=attempt + 1,
                    launch=index + 1,
                    total_launches=self.config.launches,
                    status=status,
                    detail=detail,
                )
            )

        return PackResult(
            name=display_name,
            errors=errors,
            entries=entries,
            retries=attempt + 1,
            time=build_measure(times, TIME_UNITS),
            memory=build_measure(memory, MEMORY_UNITS),
        )


# ---------------------------------------------------------------------------
# RetryController
# ---------------------------------------------------------------------------


class RetryController:
    """Re-runs whole packs while the time deviation exceeds the gate.

    Only the time stdev is gated, never memory.  Once the retry budget
    is spent the last pack is final, however noisy.
    """

    def __init__(self, config: RunConfig, pack_runner: PackRunner) -> None:
        self.config = config
        self.pack_runner = pack_runner

    def is_unstable(self, result: PackResult) -> bool:
        """Whether *result* fails the acceptance gate."""
        if result.time.stdev > self.config.max_stdev:
            return True
        return self.config.retry_on_total_failure and result.failed

    def should_retry(self, result: PackResult) -> bool:
        return self.is_unstable(result) and result.retries < self.config.retries

    def run(self, suite: Path, *, name: str | None = None) -> PackResult:
        """Run packs of *suite* until one is accepted or the budget is spent."""
        result = self.pack_runner.run_pack(suite, 0, name=name)

        while self.should_retry(result):
            log.info(
                "%s: stdev %.3f%s exceeds %.3f, retrying (%d/%d)",
                result.name,
                result.time.stdev,
                result.time.units,
                self.config.max_stdev,
                result.retries + 1,
                self.config.retries,
            )
            result = self.pack_runner.run_pack(suite, result.retries, name=name)

        if self.is_unstable(result):
            log.warning(
                "%s: retry budget spent; keeping result with stdev %.3f%s",
                result.name,
                result.time.stdev,
                result.time.units,
            )
        return result


# ---------------------------------------------------------------------------
# BenchRunner
# ---------------------------------------------------------------------------


class BenchRunner:
    """Executes a benchmark run according to a RunConfig.

    Usage::

        config = RunConfig(suite_type="sync", depth=1, launches=10, max_stdev=3, retries=5)
        runner = BenchRunner(config, report=print_result)
        meta, results = runner.run()
    """

    def __init__(
        self,
        config: RunConfig,
        *,
        launcher: Launcher | None = None,
        report: ReportCallback | None = None,
        progress_callback: ProgressCallback | None = None,
        discover: Callable[[Path, int], list[Path]] = discover_suites,
        cli_args: list[str] | None = None,
    ) -> None:
        self.config = config
        self.launcher: Launcher = launcher or WorkerLauncher(config.python)
        self.report: ReportCallback = report or self._default_report
        self.discover = discover
        self.cli_args = cli_args or []
        self.pack_runner = PackRunner(
            config,
            self.launcher,
            progress_callback=progress_callback,
        )
        self.controller = RetryController(config, self.pack_runner)

    def run(self) -> tuple[RunMeta, list[PackResult]]:
        """Execute the full benchmark.

        Returns:
            Tuple of (RunMeta, list of PackResult) in discovery order.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        ensure_valid(self.config)

        suite_dir = self.config.suite_dir
        suites = self.discover(suite_dir, self.config.depth)
        log.info(
            "Benchmarking %d %s suites from %s",
            len(suites),
            self.config.suite_type,
            suite_dir,
        )

        meta = RunMeta(
            bench_id=self.config.bench_id,
            config=self.config.to_dict(),
            cli_args=self.cli_args,
            start_time=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            suites_total=len(suites),
        )

        output_dir = self.config.output_dir
        results_path: Path | None = None
        if output_dir is not None:
            output_dir.mkdir(parents=True, exist_ok=True)
            write_meta(output_dir, meta)
            results_path = output_dir / RESULTS_FILE
            results_path.write_text("")

        results: list[PackResult] = []
        for idx, suite in enumerate(suites):
            name = suite_name(suite, suite_dir)
            log.info("[%d/%d] %s", idx + 1, len(suites), name)

            result = self.controller.run(suite, name=name)
            results.append(result)
            if results_path is not None:
                append_pack_result(results_path, result)
            self.report(result)

        meta.end_time = time.strftime("%Y-%m-%dT%H:%M:%S%z")
        meta.suites_completed = len(results)
        meta.suites_failed = sum(1 for r in results if r.failed)

        if output_dir is not None:
            save_run(output_dir, meta, results)
            log.info("Benchmark complete: %s", output_dir)

        return meta, results

    @staticmethod
    def _default_report(result: PackResult) -> None:
        """Default report callback: log the formatted result."""
        from packbench.bench.display import format_pack_result

        log.info("\n%s", format_pack_result(result))
