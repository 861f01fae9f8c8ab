"""Tests for packbench.bench.config — run configuration."""

from __future__ import annotations

import sys
import tempfile
import unittest
from dataclasses import FrozenInstanceError
from pathlib import Path

from bench_test_helpers import make_config

from packbench.bench.config import (
    ConfigurationError,
    RunConfig,
    config_from_profile,
    ensure_valid,
    load_profile,
    parse_env_pairs,
    validate_config,
)

REQUIRED = {"type": "sync", "depth": 1, "launches": 10, "max_stdev": 3, "retries": 5}


class TestRunConfig(unittest.TestCase):
    def test_frozen(self) -> None:
        config = make_config()
        with self.assertRaises(FrozenInstanceError):
            config.launches = 10  # type: ignore[misc]

    def test_auto_bench_id(self) -> None:
        config = RunConfig(suite_type="sync", depth=0, launches=3, max_stdev=1, retries=1)
        self.assertTrue(config.bench_id.startswith("bench_"))

    def test_suite_dir(self) -> None:
        config = make_config(suites_dir=Path("/b/suites"), suite_type="async")
        self.assertEqual(config.suite_dir, Path("/b/suites/async"))

    def test_output_dir(self) -> None:
        self.assertIsNone(make_config().output_dir)
        config = make_config(results_dir=Path("results"))
        self.assertEqual(config.output_dir, Path("results/bench_test_001"))

    def test_defaults(self) -> None:
        config = make_config()
        self.assertEqual(config.python, sys.executable)
        self.assertEqual(config.env, {})
        self.assertFalse(config.retry_on_total_failure)

    def test_to_dict(self) -> None:
        d = make_config(env={"A": "1"}).to_dict()
        self.assertEqual(d["type"], "sync")
        self.assertEqual(d["launches"], 3)
        self.assertEqual(d["max_stdev"], 5.0)
        self.assertEqual(d["retries"], 2)
        self.assertEqual(d["env"], {"A": "1"})


class TestValidateConfig(unittest.TestCase):
    def _fields(self, config: RunConfig, severity: str = "error") -> list[str]:
        errors = validate_config(config, check_paths=False)
        return [e.field for e in errors if e.severity == severity]

    def test_valid(self) -> None:
        self.assertEqual(validate_config(make_config(), check_paths=False), [])

    def test_zero_launches(self) -> None:
        self.assertIn("launches", self._fields(make_config(launches=0)))

    def test_few_launches_warns(self) -> None:
        config = make_config(launches=2)
        self.assertNotIn("launches", self._fields(config))
        self.assertIn("launches", self._fields(config, "warning"))

    def test_negative_depth(self) -> None:
        self.assertIn("depth", self._fields(make_config(depth=-1)))

    def test_negative_retries(self) -> None:
        self.assertIn("retries", self._fields(make_config(retries=-1)))

    def test_zero_retries_allowed(self) -> None:
        self.assertEqual(self._fields(make_config(retries=0)), [])

    def test_negative_max_stdev(self) -> None:
        self.assertIn("max_stdev", self._fields(make_config(max_stdev=-0.1)))

    def test_unknown_type(self) -> None:
        self.assertIn("type", self._fields(make_config(suite_type="parallel")))

    def test_missing_suite_dir(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = make_config(suites_dir=Path(tmpdir))
            errors = validate_config(config)
            self.assertEqual([e.field for e in errors], ["suites_dir"])
            (Path(tmpdir) / "sync").mkdir()
            self.assertEqual(validate_config(config), [])


class TestEnsureValid(unittest.TestCase):
    def test_raises_on_error(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            ensure_valid(make_config(launches=0), check_paths=False)
        self.assertIn("launches", str(ctx.exception))

    def test_warnings_do_not_raise(self) -> None:
        with self.assertLogs("packbench", level="WARNING") as logs:
            ensure_valid(make_config(launches=1), check_paths=False)
        self.assertIn("launches", logs.output[0])


class TestLoadProfile(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_load(self) -> None:
        path = self.tmp / "bench.yaml"
        path.write_text("type: async\nlaunches: 4\nenv:\n  SEED: 1\n")
        data = load_profile(path)
        self.assertEqual(data["type"], "async")
        self.assertEqual(data["env"], {"SEED": 1})

    def test_missing(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_profile(self.tmp / "nope.yaml")

    def test_empty_file(self) -> None:
        path = self.tmp / "empty.yaml"
        path.write_text("")
        self.assertEqual(load_profile(path), {})

    def test_not_a_mapping(self) -> None:
        path = self.tmp / "list.yaml"
        path.write_text("- a\n- b\n")
        with self.assertRaises(ConfigurationError):
            load_profile(path)

    def test_invalid_yaml(self) -> None:
        path = self.tmp / "bad.yaml"
        path.write_text("type: [sync\n")
        with self.assertRaises(ConfigurationError):
            load_profile(path)


class TestConfigFromProfile(unittest.TestCase):
    def test_profile_only(self) -> None:
        config = config_from_profile(dict(REQUIRED, suites_dir="b/suites", cwd="fixtures"))
        self.assertEqual(config.suite_type, "sync")
        self.assertEqual(config.depth, 1)
        self.assertEqual(config.launches, 10)
        self.assertEqual(config.max_stdev, 3.0)
        self.assertIsInstance(config.max_stdev, float)
        self.assertEqual(config.retries, 5)
        self.assertEqual(config.suites_dir, Path("b/suites"))
        self.assertEqual(config.working_dir, Path("fixtures"))

    def test_cli_only(self) -> None:
        config = config_from_profile({}, cli_overrides=dict(REQUIRED))
        self.assertEqual(config.launches, 10)

    def test_cli_wins(self) -> None:
        config = config_from_profile(
            dict(REQUIRED),
            cli_overrides={"launches": 3, "type": "async", "depth": None},
        )
        self.assertEqual(config.launches, 3)
        self.assertEqual(config.suite_type, "async")
        self.assertEqual(config.depth, 1)

    def test_missing_required(self) -> None:
        data = dict(REQUIRED)
        del data["retries"]
        with self.assertRaises(ConfigurationError) as ctx:
            config_from_profile(data)
        self.assertIn("retries", str(ctx.exception))

    def test_wrong_type(self) -> None:
        with self.assertRaises(ConfigurationError):
            config_from_profile(dict(REQUIRED, launches="many"))

    def test_fractional_count_rejected(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            config_from_profile(dict(REQUIRED, launches=2.7))
        self.assertIn("launches", str(ctx.exception))

    def test_integral_float_count_accepted(self) -> None:
        config = config_from_profile(dict(REQUIRED, launches=4.0))
        self.assertEqual(config.launches, 4)
        self.assertIsInstance(config.launches, int)

    def test_numeric_string_accepted(self) -> None:
        self.assertEqual(config_from_profile(dict(REQUIRED, retries="3")).retries, 3)

    def test_bool_is_not_a_number(self) -> None:
        for key in ("depth", "launches", "retries", "max_stdev"):
            with self.subTest(key=key), self.assertRaises(ConfigurationError):
                config_from_profile(dict(REQUIRED, **{key: True}))

    def test_type_must_be_string(self) -> None:
        with self.assertRaises(ConfigurationError):
            config_from_profile(dict(REQUIRED, type=1))

    def test_quoted_flag_rejected(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            config_from_profile(dict(REQUIRED, retry_on_total_failure="false"))
        self.assertIn("retry_on_total_failure", str(ctx.exception))

    def test_flag_defaults_off(self) -> None:
        self.assertFalse(config_from_profile(dict(REQUIRED)).retry_on_total_failure)

    def test_env_merge(self) -> None:
        config = config_from_profile(
            dict(REQUIRED, env={"A": 1, "B": "x"}),
            cli_overrides={"env": {"B": "y"}},
        )
        self.assertEqual(config.env, {"A": "1", "B": "y"})

    def test_env_must_be_mapping(self) -> None:
        with self.assertRaises(ConfigurationError):
            config_from_profile(dict(REQUIRED, env=["A=1"]))

    def test_results_dir_and_flags(self) -> None:
        config = config_from_profile(
            dict(REQUIRED, retry_on_total_failure=True),
            cli_overrides={"results_dir": Path("out"), "bench_id": "b1"},
        )
        self.assertEqual(config.output_dir, Path("out/b1"))
        self.assertTrue(config.retry_on_total_failure)

    def test_cli_flag_overrides_profile_flag(self) -> None:
        config = config_from_profile(
            dict(REQUIRED, retry_on_total_failure=True),
            cli_overrides={"retry_on_total_failure": False},
        )
        self.assertFalse(config.retry_on_total_failure)


class TestParseEnvPairs(unittest.TestCase):
    def test_pairs(self) -> None:
        self.assertEqual(parse_env_pairs(["A=1", "B=x=y"]), {"A": "1", "B": "x=y"})

    def test_missing_equals(self) -> None:
        with self.assertRaises(ConfigurationError):
            parse_env_pairs(["A"])

    def test_empty_key(self) -> None:
        with self.assertRaises(ConfigurationError):
            parse_env_pairs(["=1"])


if __name__ == "__main__":
    unittest.main()
