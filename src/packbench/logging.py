"""Logging configuration for the packbench CLI.

Every module logs through the ``packbench`` logger.  Suite reports are
written to stdout by the CLI, so log records go to stderr and, with
``--log-file``, to a file that keeps per-launch DEBUG detail.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

PACKAGE_LOGGER = "packbench"
_CONSOLE_FORMAT = "%(levelname)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(message)s"


def console_level(*, verbose: bool = False, quiet: bool = False) -> int:
    """Map the -v/-q flags to a console level; -v wins."""
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Attach the console and optional file handlers to the packbench logger.

    Handlers from an earlier call are closed and replaced, so each CLI
    invocation starts clean.  The file handler logs at DEBUG whatever
    the console level is.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level(verbose=verbose, quiet=quiet))
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger
