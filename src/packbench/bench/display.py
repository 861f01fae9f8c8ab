"""Terminal display formatting for benchmark results.

Produces one aligned block per suite and a summary table for a
complete run.  No external dependencies.
"""

from __future__ import annotations

from packbench.bench.results import PackResult, RunMeta
from packbench.bench.stats import Measure


def _format_measure(measure: Measure, precision: int = 3) -> str:
    """Format ``average ± stdev units``."""
    return (
        f"{measure.average:.{precision}f}{measure.units} "
        f"± {measure.stdev:.{precision}f}{measure.units}"
    )


def _relative_stdev(measure: Measure) -> str:
    """Stdev as a percentage of the average, for quick comparison."""
    if measure.average == 0:
        return "N/A"
    return f"{measure.stdev / measure.average * 100:.1f}%"


# ---------------------------------------------------------------------------
# Single pack
# ---------------------------------------------------------------------------


def format_pack_result(result: PackResult) -> str:
    """Format a single suite's final result for display."""
    status = "FAILED" if result.failed else "ok"
    lines = [
        f"{result.name} [{status}]",
        f"  Launches: {result.launches} ({result.errors} errors)",
        f"  Entries:  {result.entries}",
        f"  Retries:  {result.retries}",
        f"  Time:     {_format_measure(result.time)} ({_relative_stdev(result.time)})",
        f"  Memory:   {_format_measure(result.memory)} ({_relative_stdev(result.memory)})",
    ]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Complete run
# ---------------------------------------------------------------------------


def format_run_summary(meta: RunMeta, results: list[PackResult]) -> str:
    """Format a complete benchmark run for display.

    Shows the run settings and one table row per suite, in the order
    the suites were run.
    """
    lines: list[str] = []

    title = meta.bench_id
    lines.append(title)
    lines.append("─" * len(title))

    cfg = meta.config
    lines.append(
        f"Type: {cfg.get('type', '?')}  Depth: {cfg.get('depth', '?')}  "
        f"Launches: {cfg.get('launches', '?')}  Max stdev: {cfg.get('max_stdev', '?')}  "
        f"Retries: {cfg.get('retries', '?')}"
    )
    lines.append(
        f"Suites: {meta.suites_completed}/{meta.suites_total} completed, "
        f"{meta.suites_failed} failed"
    )
    if meta.start_time and meta.end_time:
        lines.append(f"Time: {meta.start_time} → {meta.end_time}")
    lines.append("")

    header = (
        f"{'Suite':<30s} {'Time':>12s} {'±':>10s} {'Memory':>10s} "
        f"{'±':>8s} {'Entries':>8s} {'Err':>4s} {'Try':>4s}"
    )
    lines.append(header)
    lines.append("─" * len(header))

    for r in results:
        marker = " !" if r.failed else ""
        lines.append(
            f"{r.name:<30s} {r.time.average:>10.3f}{r.time.units:<2s} "
            f"{r.time.stdev:>8.3f}{r.time.units:<2s} "
            f"{r.memory.average:>8.3f}{r.memory.units:<2s} "
            f"{r.memory.stdev:>6.3f}{r.memory.units:<2s} "
            f"{r.entries:>8d} {r.errors:>4d} {r.retries:>4d}{marker}"
        )

    if any(r.failed for r in results):
        lines.append("")
        lines.append("! every launch of this suite failed")

    return "\n".join(lines)
