"""Worker process protocol.

A suite, when launched, writes exactly one JSON object to stdout and
nothing else::

    {"matches": 120, "time": 14.2, "memory": 3.1}

``matches`` is a non-negative integer, ``time`` is the elapsed time in
milliseconds and ``memory`` the memory used in megabytes.

The orchestrator side parses that output with :func:`parse_observation`.
The worker side can use :func:`emit_observation` or :func:`measure` to
produce it.
"""

from __future__ import annotations

import json
import math
import sys
import time
import tracemalloc
from dataclasses import dataclass
from typing import Any, Callable, Sized, TextIO

TIME_UNITS = "ms"
MEMORY_UNITS = "MB"

_FIELDS = ("matches", "time", "memory")


class MalformedResultError(ValueError):
    """Worker output did not parse into a RawObservation."""


@dataclass(frozen=True)
class RawObservation:
    """Measurements reported by a single successful launch."""

    matches: int
    time: float
    memory: float

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire format."""
        return {"matches": self.matches, "time": self.time, "memory": self.memory}


# ---------------------------------------------------------------------------
# Orchestrator side
# ---------------------------------------------------------------------------


def parse_observation(text: str) -> RawObservation:
    """Parse the raw stdout of a launch.

    Raises:
        MalformedResultError: If the output is not a single JSON object
            with non-negative numeric ``matches``, ``time`` and ``memory``.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise MalformedResultError(f"Suite output is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedResultError(f"Suite output must be a JSON object, got {type(data).__name__}")

    missing = [name for name in _FIELDS if name not in data]
    if missing:
        raise MalformedResultError(f"Suite output is missing fields: {', '.join(missing)}")

    for name in _FIELDS:
        value = data[name]
        # bool is a subclass of int; reject it explicitly.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedResultError(f"Field '{name}' must be a number, got {value!r}")
        if not math.isfinite(value) or value < 0:
            raise MalformedResultError(
                f"Field '{name}' must be finite and non-negative, got {value!r}"
            )

    matches = data["matches"]
    if isinstance(matches, float):
        if not matches.is_integer():
            raise MalformedResultError(f"Field 'matches' must be an integer, got {matches!r}")
        matches = int(matches)

    return RawObservation(
        matches=matches,
        time=float(data["time"]),
        memory=float(data["memory"]),
    )


# ---------------------------------------------------------------------------
# Worker side
# ---------------------------------------------------------------------------


def emit_observation(
    matches: int,
    elapsed_ms: float,
    memory_mb: float,
    *,
    stream: TextIO | None = None,
) -> None:
    """Write a single observation line to *stream* (default: stdout)."""
    out = stream if stream is not None else sys.stdout
    observation = RawObservation(matches=matches, time=elapsed_ms, memory=memory_mb)
    out.write(json.dumps(observation.to_dict()) + "\n")
    out.flush()


def measure(
    workload: Callable[[], Sized | int],
    *,
    stream: TextIO | None = None,
) -> RawObservation:
    """Run *workload* once and emit its observation.

    The workload returns either the matched entries (their ``len`` is
    reported) or the match count directly.  Elapsed time comes from
    ``time.perf_counter`` and memory from the ``tracemalloc`` peak.
    """
    tracemalloc.start()
    start = time.perf_counter()
    try:
        result = workload()
        elapsed_ms = (time.perf_counter() - start) * 1000
        _, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()

    matches = result if isinstance(result, int) else len(result)
    observation = RawObservation(
        matches=matches,
        time=round(elapsed_ms, 3),
        memory=round(peak / (1024 * 1024), 3),
    )
    emit_observation(observation.matches, observation.time, observation.memory, stream=stream)
    return observation
