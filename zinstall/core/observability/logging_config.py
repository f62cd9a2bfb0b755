"""
Logging configuration — one call at CLI startup.

Every module logs through ``logging.getLogger(__name__)``; installer
progress lines ("📦 Installing ...") are INFO records, so the console
shows them by default and ``--quiet`` hides them.

Console level, highest precedence first:
    --debug / --quiet  >  ZINSTALL_LOG_LEVEL  >  INFO

A log file (ZINSTALL_LOG_FILE) always gets full detail, at
ZINSTALL_LOG_FILE_LEVEL or the console level.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

LEVEL_ENV = "ZINSTALL_LOG_LEVEL"
FILE_ENV = "ZINSTALL_LOG_FILE"
FILE_LEVEL_ENV = "ZINSTALL_LOG_FILE_LEVEL"

# (format, datefmt) per console mode
_CONSOLE_FORMATS: dict[str, tuple[str, str | None]] = {
    "plain": ("%(message)s", None),
    "verbose": ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    "debug": ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
}
_FILE_FORMAT = ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%Y-%m-%d %H:%M:%S")

# Stdlib/third-party loggers kept at WARNING unless debugging
_QUIET_LOGGERS = ("urllib3", "urllib.request", "asyncio")


def parse_level(name: str | None, default: int = logging.INFO) -> int:
    """Level name → numeric level; unknown or empty names give *default*."""
    if not name:
        return default
    numeric = logging.getLevelName(name.strip().upper())
    return numeric if isinstance(numeric, int) else default


def resolve_level(
    *,
    debug: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Console level from CLI flags, then the environment."""
    if debug:
        return logging.DEBUG
    if quiet:
        return logging.ERROR
    env = os.environ if environ is None else environ
    return parse_level(env.get(LEVEL_ENV))


def setup_logging(
    level: int = logging.INFO,
    *,
    verbose: bool = False,
    log_file: str | None = None,
    log_file_level: int | None = None,
) -> None:
    """Install console (stderr) and optional file handlers on the root logger.

    Safe to call more than once; previous handlers are replaced.
    """
    if level <= logging.DEBUG:
        mode = "debug"
    elif verbose:
        mode = "verbose"
    else:
        mode = "plain"
    fmt, datefmt = _CONSOLE_FORMATS[mode]

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    lowest = level
    if log_file:
        file_level = level if log_file_level is None else log_file_level
        lowest = min(lowest, file_level)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(*_FILE_FORMAT))
        root.addHandler(fh)
    root.setLevel(lowest)

    quiet_level = logging.NOTSET if lowest <= logging.DEBUG else logging.WARNING
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def setup_logging_from_env(
    *,
    debug: bool = False,
    quiet: bool = False,
    verbose: bool = False,
    environ: Mapping[str, str] | None = None,
) -> None:
    """``setup_logging`` with levels and the log file taken from flags and env."""
    env = os.environ if environ is None else environ
    file_level = env.get(FILE_LEVEL_ENV)
    setup_logging(
        resolve_level(debug=debug, quiet=quiet, environ=env),
        verbose=verbose,
        log_file=env.get(FILE_ENV) or None,
        log_file_level=parse_level(file_level) if file_level else None,
    )
