"""
Logging configuration — one setup call from the CLI, before any command runs.

Modules log through ``logging.getLogger(__name__)``; this module decides
where those records go and how they look.

Console level, first match wins:

    --debug / --verbose   DEBUG
    --quiet               WARNING
    DISKCOMPAT_LOG_LEVEL
    INFO

A log file is opt-in via DISKCOMPAT_LOG_FILE, with its own level in
DISKCOMPAT_LOG_FILE_LEVEL (default: the console level).
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

DEFAULT_LEVEL = "INFO"

ENV_LEVEL = "DISKCOMPAT_LOG_LEVEL"
ENV_FILE = "DISKCOMPAT_LOG_FILE"
ENV_FILE_LEVEL = "DISKCOMPAT_LOG_FILE_LEVEL"

_DATEFMT = "%Y-%m-%d %H:%M:%S"

# What the operator watches during a run
_FMT_CONSOLE = "[%(asctime)s] %(levelname)s %(message)s"

# Same, plus where the record came from
_FMT_DETAILED = "[%(asctime)s] %(levelname)-7s %(name)s:%(lineno)d %(message)s"


def level_from_flags(
    verbose: bool = False,
    quiet: bool = False,
    env: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if verbose:
        return "DEBUG"
    if quiet:
        return "WARNING"
    env = os.environ if env is None else env
    return env.get(ENV_LEVEL) or DEFAULT_LEVEL


def setup_logging(
    level: str = DEFAULT_LEVEL,
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers with ours.

    Args:
        level: Console level name.
        log_file: Also append records to this file.
        log_file_level: Level for the file (default: ``level``).
    """
    console_level = _parse_level(level)
    fmt = _FMT_DETAILED if console_level <= logging.DEBUG else _FMT_CONSOLE

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=_DATEFMT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(file_level)
        handler.setFormatter(logging.Formatter(_FMT_DETAILED, datefmt=_DATEFMT))
        root.addHandler(handler)
        root_level = min(root_level, file_level)

    # the root level gates both handlers, so it follows the more verbose one
    root.setLevel(root_level)
    logging.raiseExceptions = False


def setup_logging_from_env(level: str, env: Mapping[str, str] | None = None) -> None:
    """``setup_logging`` with the file settings taken from the environment."""
    env = os.environ if env is None else env
    setup_logging(level=level, log_file=env.get(ENV_FILE), log_file_level=env.get(ENV_FILE_LEVEL))


def _parse_level(level: str | None) -> int:
    """Level name to number; unknown or empty names mean INFO."""
    numeric = logging.getLevelName(level.upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.INFO
