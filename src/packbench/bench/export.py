"""Export benchmark results to CSV and Markdown formats.

CSV format: one row per suite per launch sample (long format for
pandas/R), zero-filled failed launches included.

Markdown format: a summary table suitable for reports and issues.
"""

from __future__ import annotations

import csv
import io

from packbench.bench.results import PackResult, RunMeta


def export_csv(meta: RunMeta, results: list[PackResult]) -> str:
    """Export results as CSV (long format).

    Columns:
        bench_id, suite, launch, time, time_units, memory, memory_units,
        retries
    """
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(
        [
            "bench_id",
            "suite",
            "launch",
            "time",
            "time_units",
            "memory",
            "memory_units",
            "retries",
        ]
    )

    for r in results:
        for idx, (t, m) in enumerate(zip(r.time.raw, r.memory.raw)):
            writer.writerow(
                [
                    meta.bench_id,
                    r.name,
                    idx + 1,
                    f"{t:.6f}",
                    r.time.units,
                    f"{m:.6f}",
                    r.memory.units,
                    r.retries,
                ]
            )

    return output.getvalue()


def export_markdown(meta: RunMeta, results: list[PackResult]) -> str:
    """Export results as a Markdown summary table."""
    cfg = meta.config
    lines = [
        f"## Benchmark: {meta.bench_id}",
        "",
        (
            f"{cfg.get('launches', '?')} launches per pack, "
            f"max stdev {cfg.get('max_stdev', '?')}, "
            f"up to {cfg.get('retries', '?')} attempts per suite."
        ),
        "",
        "| Suite | Time | ± | Memory | ± | Entries | Errors | Attempts |",
        "|-------|-----:|--:|-------:|--:|--------:|-------:|---------:|",
    ]

    for r in results:
        name = f"**{r.name}** (failed)" if r.failed else r.name
        lines.append(
            f"| {name} "
            f"| {r.time.average:.3f}{r.time.units} | {r.time.stdev:.3f}{r.time.units} "
            f"| {r.memory.average:.3f}{r.memory.units} | {r.memory.stdev:.3f}{r.memory.units} "
            f"| {r.entries} | {r.errors} | {r.retries} |"
        )

    return "\n".join(lines) + "\n"
