"""Benchmark result data structures and serialization.

Hierarchy::

    RunMeta (top level, one invocation)
      -> config snapshot, timestamps, suite counts

    PackResult (per suite, the final accepted attempt)
      -> time: Measure
      -> memory: Measure

Files produced::

    run_meta.json        RunMeta
    pack_results.jsonl   one PackResult per line
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from packbench.bench.protocol import MEMORY_UNITS, TIME_UNITS
from packbench.bench.stats import Measure

log = logging.getLogger("packbench")

META_FILE = "run_meta.json"
RESULTS_FILE = "pack_results.jsonl"


# ---------------------------------------------------------------------------
# Pack-level result
# ---------------------------------------------------------------------------


@dataclass
class PackResult:
    """One full measurement of one suite."""

    name: str
    errors: int = 0
    entries: int = 0  # Match count of the last successful launch
    retries: int = 1  # 1 on the first attempt
    time: Measure = field(default_factory=lambda: Measure(units=TIME_UNITS))
    memory: Measure = field(default_factory=lambda: Measure(units=MEMORY_UNITS))

    @property
    def launches(self) -> int:
        return self.time.count

    @property
    def successes(self) -> int:
        return self.launches - self.errors

    @property
    def failed(self) -> bool:
        """True if every launch of the pack errored."""
        return self.launches > 0 and self.errors == self.launches

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "name": self.name,
            "errors": self.errors,
            "entries": self.entries,
            "retries": self.retries,
            "measures": {
                "time": self.time.to_dict(),
                "memory": self.memory.to_dict(),
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackResult:
        """Deserialize from a dict."""
        measures = data.get("measures", {})
        result = cls(
            name=data["name"],
            errors=data.get("errors", 0),
            entries=data.get("entries", 0),
            retries=data.get("retries", 1),
        )
        if "time" in measures:
            result.time = Measure.from_dict(measures["time"])
        if "memory" in measures:
            result.memory = Measure.from_dict(measures["memory"])
        return result

    def to_jsonl_line(self) -> str:
        """Serialize to a single JSONL line."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_jsonl_line(cls, line: str) -> PackResult:
        """Deserialize from a single JSONL line."""
        return cls.from_dict(json.loads(line))


# ---------------------------------------------------------------------------
# Run-level metadata
# ---------------------------------------------------------------------------


@dataclass
class RunMeta:
    """Metadata for a complete benchmark run."""

    bench_id: str
    config: dict[str, Any] = field(default_factory=dict)
    cli_args: list[str] = field(default_factory=list)
    start_time: str = ""
    end_time: str = ""
    suites_total: int = 0
    suites_completed: int = 0
    suites_failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "bench_id": self.bench_id,
            "config": self.config,
            "cli_args": self.cli_args,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "suites_total": self.suites_total,
            "suites_completed": self.suites_completed,
            "suites_failed": self.suites_failed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunMeta:
        """Deserialize from a dict, ignoring unknown fields."""
        known = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in known}
        return cls(**filtered)


# ---------------------------------------------------------------------------
# I/O functions
# ---------------------------------------------------------------------------


def save_run(output_dir: Path, meta: RunMeta, results: list[PackResult]) -> None:
    """Save a complete benchmark run to disk.

    Creates ``output_dir/run_meta.json`` and
    ``output_dir/pack_results.jsonl``.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    write_meta(output_dir, meta)

    results_path = output_dir / RESULTS_FILE
    with open(results_path, "w") as f:
        for result in results:
            f.write(result.to_jsonl_line() + "\n")
    log.info("Wrote %d pack results to %s", len(results), results_path)


def write_meta(output_dir: Path, meta: RunMeta) -> None:
    """Write ``run_meta.json``, replacing any previous version."""
    meta_path = output_dir / META_FILE
    meta_path.write_text(json.dumps(meta.to_dict(), indent=2) + "\n")
    log.debug("Wrote %s", meta_path)


def load_run(run_dir: Path) -> tuple[RunMeta, list[PackResult]]:
    """Load a benchmark run from disk.

    Raises:
        FileNotFoundError: If ``run_meta.json`` is missing.
    """
    meta_path = run_dir / META_FILE
    if not meta_path.exists():
        raise FileNotFoundError(f"No {META_FILE} in {run_dir}")

    meta = RunMeta.from_dict(json.loads(meta_path.read_text()))

    results: list[PackResult] = []
    results_path = run_dir / RESULTS_FILE
    if results_path.exists():
        for line in results_path.read_text().splitlines():
            line = line.strip()
            if line:
                results.append(PackResult.from_jsonl_line(line))

    return meta, results


def append_pack_result(results_path: Path, result: PackResult) -> None:
    """Append a single pack result to the JSONL file.

    Results of finished suites survive an interrupted run.
    """
    with open(results_path, "a") as f:
        f.write(result.to_jsonl_line() + "\n")
