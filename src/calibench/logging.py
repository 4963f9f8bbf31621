"""Logging setup for calibench.

Benchmark output goes to stdout; everything logged goes to stderr (or a
file), so ``calibench run --format csv > out.csv`` stays clean.  Library
modules log under the ``calibench`` namespace and never install handlers
themselves.  Only the CLI calls :func:`setup_logging`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TextIO

_LOGGER_NAME = "calibench"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_CONSOLE_FORMAT = "%(levelname)-8s %(message)s"

# Marks handlers installed here, so reconfiguring leaves foreign ones alone.
_OWNED = "_calibench_owned"


def console_level(*, verbose: bool = False, quiet: bool = False) -> int:
    """Console level for the CLI flags; *verbose* wins over *quiet*."""
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
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure and return the calibench logger.

    Safe to call repeatedly: handlers from a previous call are replaced,
    handlers added by an embedding application are kept.

    Args:
        verbose: Show per-benchmark DEBUG messages (calibration, rounds).
        quiet: Only show warnings such as the coarse-clock advisory.
        log_file: If provided, also log everything at DEBUG to this path.
        stream: Console stream; defaults to ``sys.stderr``.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in [h for h in logger.handlers if getattr(h, _OWNED, False)]:
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream)
    console.setLevel(console_level(verbose=verbose, quiet=quiet))
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    setattr(console, _OWNED, True)
    logger.addHandler(console)

    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT))
        setattr(fh, _OWNED, True)
        logger.addHandler(fh)

    return logger
