"""Result-or-error values for single launches.

The pack runner accumulates these instead of catching exceptions
itself, so the zero-fill branch for failed launches is explicit.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from packbench.bench.launcher import Launcher, LaunchError
from packbench.bench.protocol import MalformedResultError, RawObservation, parse_observation

LAUNCH_FAILED = "launch"
MALFORMED_RESULT = "malformed"


@dataclass(frozen=True)
class LaunchSuccess:
    observation: RawObservation


@dataclass(frozen=True)
class LaunchFailure:
    kind: str  # LAUNCH_FAILED or MALFORMED_RESULT
    message: str


LaunchOutcome = Union[LaunchSuccess, LaunchFailure]


def attempt_launch(launcher: Launcher, suite: Path, env: dict[str, str]) -> LaunchOutcome:
    """Launch *suite* once and parse its output.

    Launch and parse failures become a LaunchFailure; any other
    exception propagates.
    """
    try:
        stdout = launcher.launch(suite, env)
    except LaunchError as exc:
        message = str(exc)
        if exc.stderr.strip():
            message = f"{message}: {exc.stderr.strip().splitlines()[-1]}"
        return LaunchFailure(kind=LAUNCH_FAILED, message=message)
    except MalformedResultError as exc:
        return LaunchFailure(kind=MALFORMED_RESULT, message=str(exc))

    try:
        observation = parse_observation(stdout)
    except MalformedResultError as exc:
        return LaunchFailure(kind=MALFORMED_RESULT, message=str(exc))

    return LaunchSuccess(observation=observation)
