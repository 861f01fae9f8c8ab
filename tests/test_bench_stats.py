"""Tests for packbench.bench.stats — measurement aggregation."""

from __future__ import annotations

import math
import unittest

from packbench.bench.stats import Measure, build_measure, get_average, get_stdev


class TestGetAverage(unittest.TestCase):
    def test_empty_is_zero(self) -> None:
        self.assertEqual(get_average([]), 0.0)

    def test_arithmetic_mean(self) -> None:
        self.assertAlmostEqual(get_average([10, 20, 0]), 10.0)

    def test_single_value(self) -> None:
        self.assertEqual(get_average([4.5]), 4.5)


class TestGetStdev(unittest.TestCase):
    """Population standard deviation (divide by n)."""

    def test_empty_is_zero(self) -> None:
        self.assertEqual(get_stdev([]), 0.0)

    def test_constant_samples(self) -> None:
        self.assertEqual(get_stdev([10.0, 10.0, 10.0]), 0.0)

    def test_population_not_sample(self) -> None:
        # Sample stdev of [10, 20, 0] would be 10.0.
        self.assertAlmostEqual(get_stdev([10, 20, 0]), math.sqrt(200 / 3))
        self.assertAlmostEqual(get_stdev([10, 20, 0]), 8.165, places=3)

    def test_single_value_is_zero(self) -> None:
        self.assertEqual(get_stdev([7.0]), 0.0)

    def test_order_independent(self) -> None:
        self.assertAlmostEqual(get_stdev([1, 2, 3, 4]), get_stdev([4, 3, 2, 1]))

    def test_non_negative(self) -> None:
        for values in ([1.0], [0.0, 100.0], [3.3, 3.3, 3.4], [1e9, 1e-9]):
            self.assertGreaterEqual(get_stdev(values), 0.0)


class TestBuildMeasure(unittest.TestCase):
    def test_fields(self) -> None:
        m = build_measure([10, 20, 0], "ms")
        self.assertEqual(m.units, "ms")
        self.assertEqual(m.raw, [10.0, 20.0, 0.0])
        self.assertAlmostEqual(m.average, 10.0)
        self.assertAlmostEqual(m.stdev, 8.16496580927726)
        self.assertEqual(m.count, 3)

    def test_empty(self) -> None:
        m = build_measure([], "MB")
        self.assertEqual(m.raw, [])
        self.assertEqual(m.average, 0.0)
        self.assertEqual(m.stdev, 0.0)

    def test_idempotent(self) -> None:
        samples = [1.1, 2.2, 3.3, 0.0, 9.9]
        first = build_measure(samples, "ms")
        second = build_measure(samples, "ms")
        self.assertEqual(first.average, second.average)
        self.assertEqual(first.stdev, second.stdev)

    def test_copies_samples(self) -> None:
        samples = [1.0, 2.0]
        m = build_measure(samples, "ms")
        samples.append(3.0)
        self.assertEqual(m.raw, [1.0, 2.0])

    def test_preserves_launch_order(self) -> None:
        m = build_measure([3.0, 0.0, 1.0], "ms")
        self.assertEqual(m.raw, [3.0, 0.0, 1.0])


class TestMeasureSerialization(unittest.TestCase):
    def test_to_dict(self) -> None:
        d = build_measure([1.0, 3.0], "ms").to_dict()
        self.assertEqual(d["units"], "ms")
        self.assertEqual(d["raw"], [1.0, 3.0])
        self.assertEqual(d["average"], 2.0)
        self.assertEqual(d["stdev"], 1.0)

    def test_from_dict_recomputes(self) -> None:
        m = Measure.from_dict({"units": "MB", "raw": [2, 4], "average": 99, "stdev": 99})
        self.assertEqual(m.average, 3.0)
        self.assertEqual(m.stdev, 1.0)
        self.assertEqual(m.units, "MB")


if __name__ == "__main__":
    unittest.main()
