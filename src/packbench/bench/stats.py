"""Measurement aggregation for benchmark packs.

Reduces the raw per-launch samples of one metric into a ``Measure``:
the arithmetic mean and the *population* standard deviation (divide by
``n``, not ``n - 1``).  Both are ``0.0`` for an empty sample list.

Samples keep launch order, including the zero-valued samples recorded
for failed launches.
"""

from __future__ import annotations

import math
import statistics
from dataclasses import dataclass, field
from typing import Any, Sequence


# ---------------------------------------------------------------------------
# Summary statistics
# ---------------------------------------------------------------------------


def get_average(values: Sequence[float]) -> float:
    """Arithmetic mean of *values*, or 0.0 if there are none."""
    if not values:
        return 0.0
    return statistics.fmean(values)


def get_stdev(values: Sequence[float]) -> float:
    """Population standard deviation of *values*, or 0.0 if there are none.

    Computed from the mean in a single pass over the data so that the
    result is identical for identical input.
    """
    if not values:
        return 0.0
    average = get_average(values)
    variance = math.fsum((x - average) ** 2 for x in values) / len(values)
    return math.sqrt(variance)


# ---------------------------------------------------------------------------
# Measure
# ---------------------------------------------------------------------------


@dataclass
class Measure:
    """Statistics for one metric over the launches of a pack."""

    units: str
    raw: list[float] = field(default_factory=list)
    average: float = 0.0
    stdev: float = 0.0

    @property
    def count(self) -> int:
        """Number of samples, failed launches included."""
        return len(self.raw)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "units": self.units,
            "raw": [round(x, 6) for x in self.raw],
            "average": round(self.average, 6),
            "stdev": round(self.stdev, 6),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Measure:
        """Deserialize from a dict.  Recomputes stats for consistency."""
        return build_measure(list(data.get("raw", [])), data.get("units", ""))


def build_measure(raw: Sequence[float], units: str) -> Measure:
    """Build a Measure from raw samples, computing average and stdev."""
    samples = [float(x) for x in raw]
    return Measure(
        units=units,
        raw=samples,
        average=get_average(samples),
        stdev=get_stdev(samples),
    )
