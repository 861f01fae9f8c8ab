"""Benchmark run configuration.

Handles:
- The resolved, immutable ``RunConfig`` threaded through every component.
- Validating the configuration before any suite is launched.
- Loading run profiles from YAML files and merging CLI options over them.
"""

from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

log = logging.getLogger("packbench")

SUITE_TYPES = ("sync", "async")


class ConfigurationError(ValueError):
    """The run configuration is invalid; raised before any launch."""


# ---------------------------------------------------------------------------
# RunConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunConfig:
    """Resolved configuration for a benchmark run.

    The first five fields are required; the rest locate suites, workers
    and result files.
    """

    suite_type: str  # "sync" or "async"; selects the suite subdirectory
    depth: int  # Nesting depth of suite discovery
    launches: int  # Samples per pack
    max_stdev: float  # Retry gate on the time stdev
    retries: int  # Retry budget per suite

    suites_dir: Path = field(default_factory=lambda: Path("suites"))
    working_dir: Path = field(default_factory=Path.cwd)
    python: str = field(default_factory=lambda: sys.executable)
    env: dict[str, str] = field(default_factory=dict)

    results_dir: Path | None = None
    bench_id: str = ""

    retry_on_total_failure: bool = False

    def __post_init__(self) -> None:
        if not self.bench_id:
            object.__setattr__(self, "bench_id", f"bench_{time.strftime('%Y%m%d_%H%M%S')}")

    @property
    def suite_dir(self) -> Path:
        """Directory holding the suites of the configured type."""
        return self.suites_dir / self.suite_type

    @property
    def output_dir(self) -> Path | None:
        """The output directory for this run, if results are persisted."""
        if self.results_dir is None:
            return None
        return self.results_dir / self.bench_id

    def to_dict(self) -> dict[str, Any]:
        """Snapshot of the settings, stored in run metadata."""
        return {
            "type": self.suite_type,
            "depth": self.depth,
            "launches": self.launches,
            "max_stdev": self.max_stdev,
            "retries": self.retries,
            "suites_dir": str(self.suites_dir),
            "working_dir": str(self.working_dir),
            "python": self.python,
            "env": dict(self.env),
            "retry_on_total_failure": self.retry_on_total_failure,
        }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


def validate_config(config: RunConfig, *, check_paths: bool = True) -> list[ValidationError]:
    """Validate a run configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if config.suite_type not in SUITE_TYPES:
        errors.append(
            ValidationError(
                field="type",
                message=(
                    f"Unknown suite type '{config.suite_type}'. "
                    f"Expected one of: {', '.join(SUITE_TYPES)}."
                ),
            )
        )

    if config.launches < 1:
        errors.append(
            ValidationError(
                field="launches",
                message=f"Need at least 1 launch per pack (got {config.launches}).",
            )
        )
    elif config.launches < 3:
        errors.append(
            ValidationError(
                field="launches",
                message=(
                    f"Deviation over {config.launches} launch(es) says little "
                    f"about stability; consider 3 or more."
                ),
                severity="warning",
            )
        )

    if config.depth < 0:
        errors.append(
            ValidationError(
                field="depth",
                message=f"Depth cannot be negative (got {config.depth}).",
            )
        )

    if config.retries < 0:
        errors.append(
            ValidationError(
                field="retries",
                message=f"Retries cannot be negative (got {config.retries}).",
            )
        )

    if config.max_stdev < 0:
        errors.append(
            ValidationError(
                field="max_stdev",
                message=f"Maximum deviation cannot be negative (got {config.max_stdev}).",
            )
        )

    if check_paths and config.suite_type in SUITE_TYPES and not config.suite_dir.is_dir():
        errors.append(
            ValidationError(
                field="suites_dir",
                message=f"Suite directory does not exist: {config.suite_dir}",
            )
        )

    return errors


def ensure_valid(config: RunConfig, *, check_paths: bool = True) -> None:
    """Log warnings and raise ConfigurationError on any fatal error."""
    errors = validate_config(config, check_paths=check_paths)
    for w in errors:
        if w.severity == "warning":
            log.warning("Config warning: %s: %s", w.field, w.message)
    fatal = [e for e in errors if e.severity == "error"]
    if fatal:
        messages = [f"  {e.field}: {e.message}" for e in fatal]
        raise ConfigurationError("Invalid benchmark configuration:\n" + "\n".join(messages))


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load a run profile from a YAML file.

    Profile format::

        type: sync
        depth: 2
        launches: 10
        max_stdev: 3
        retries: 5
        suites_dir: benchmarks/suites
        cwd: fixtures
        env:
          SUITE_SEED: "42"

    Returns:
        The parsed YAML as a dict.
    """
    import yaml

    if not profile_path.exists():
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    try:
        data = yaml.safe_load(profile_path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in profile {profile_path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Profile must be a YAML mapping, got {type(data).__name__}")

    return data


def config_from_profile(
    profile_data: dict[str, Any],
    *,
    cli_overrides: dict[str, Any] | None = None,
) -> RunConfig:
    """Build a RunConfig from a parsed profile and CLI options.

    CLI values that are not None take precedence over profile values.
    The five run settings have no defaults: each must come from one of
    the two sources.

    Raises:
        ConfigurationError: If a required setting is missing or has the
            wrong type.
    """
    cli = cli_overrides or {}

    def pick(key: str) -> Any:
        if cli.get(key) is not None:
            return cli[key]
        return profile_data.get(key)

    values: dict[str, Any] = {}
    required = (
        ("type", "suite_type", str),
        ("depth", "depth", int),
        ("launches", "launches", int),
        ("max_stdev", "max_stdev", float),
        ("retries", "retries", int),
    )
    for key, attr, kind in required:
        value = pick(key)
        if value is None:
            raise ConfigurationError(f"Missing required setting '{key}'.")
        values[attr] = _coerce(key, value, kind)

    env: dict[str, str] = {}
    profile_env = profile_data.get("env") or {}
    if not isinstance(profile_env, dict):
        raise ConfigurationError("Profile 'env' must be a mapping of NAME -> value")
    env.update({str(k): str(v) for k, v in profile_env.items()})
    env.update(cli.get("env") or {})

    suites_dir = pick("suites_dir")
    working_dir = pick("cwd")
    python = pick("python")
    results_dir = pick("results_dir")

    return RunConfig(
        **values,
        suites_dir=Path(suites_dir) if suites_dir else Path("suites"),
        working_dir=Path(working_dir) if working_dir else Path.cwd(),
        python=str(python) if python else sys.executable,
        env=env,
        results_dir=Path(results_dir) if results_dir else None,
        bench_id=pick("bench_id") or "",
        retry_on_total_failure=_coerce_flag(
            "retry_on_total_failure", pick("retry_on_total_failure")
        ),
    )


def _coerce(key: str, value: Any, kind: type) -> Any:
    """Convert a required setting to *kind* without losing information.

    Booleans are never numbers here, and a float only becomes an int
    when it is integral: ``launches: 2.7`` is an error, not ``2``.
    """
    wrong = ConfigurationError(f"Setting '{key}' must be {kind.__name__}, got {value!r}")
    if isinstance(value, bool):
        raise wrong
    if kind is str:
        if not isinstance(value, str):
            raise wrong
        return value
    if kind is int and isinstance(value, float):
        if not value.is_integer():
            raise wrong
        return int(value)
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise wrong from exc


def _coerce_flag(key: str, value: Any) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigurationError(f"Setting '{key}' must be true or false, got {value!r}")
    return value


def parse_env_pairs(pairs: tuple[str, ...] | list[str]) -> dict[str, str]:
    """Parse ``KEY=VALUE`` strings into a dict.

    Raises:
        ConfigurationError: If a pair has no ``=`` or an empty key.
    """
    env: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ConfigurationError(f"Invalid env pair '{pair}'. Expected KEY=VALUE.")
        key, value = pair.split("=", 1)
        key = key.strip()
        if not key:
            raise ConfigurationError(f"Invalid env pair '{pair}': empty name.")
        env[key] = value
    return env
