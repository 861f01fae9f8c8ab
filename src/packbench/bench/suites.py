"""Suite discovery.

A suite is a ``*.py`` file under the suite directory of the configured
type.  Files whose name starts with ``_`` are helpers, not suites.
"""

from __future__ import annotations

import logging
from pathlib import Path

log = logging.getLogger("packbench")

SUITE_SUFFIX = ".py"


def discover_suites(directory: Path, depth: int = 0) -> list[Path]:
    """Return the suites under *directory*, sorted by relative path.

    Args:
        directory: The suite directory to scan.
        depth: How many levels of subdirectories to descend into.
            ``0`` scans *directory* itself only.

    Raises:
        FileNotFoundError: If *directory* does not exist.
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"Suite directory not found: {directory}")

    suites: list[Path] = []
    pending: list[tuple[Path, int]] = [(directory, 0)]
    while pending:
        current, level = pending.pop()
        for entry in current.iterdir():
            if entry.name.startswith((".", "_")):
                continue
            if entry.is_dir():
                if level < depth:
                    pending.append((entry, level + 1))
            elif entry.suffix == SUITE_SUFFIX:
                suites.append(entry)

    suites.sort(key=lambda p: p.relative_to(directory).as_posix())
    log.debug("Discovered %d suites in %s (depth %d)", len(suites), directory, depth)
    return suites


def suite_name(suite: Path, directory: Path) -> str:
    """Display name of a suite: its path relative to *directory*."""
    try:
        return suite.relative_to(directory).as_posix()
    except ValueError:
        return suite.name
