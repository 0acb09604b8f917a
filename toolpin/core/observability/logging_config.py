"""
Logging configuration — set up once by the toolpin CLI.

Every module that does ``logger = logging.getLogger(__name__)``
inherits this config. Console output always goes to stderr: stdout
belongs to the package manager being dispatched to.

Console level, highest priority first:
    --debug  >  --verbose  >  --quiet  >  TOOLPIN_LOG_LEVEL  >  WARNING

TOOLPIN_LOG_FILE adds a file handler, at TOOLPIN_LOG_FILE_LEVEL if set.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Mapping

_LOGGER_NAME = "toolpin"

# Console format per level: bare at WARNING and above, since the wrapped
# tool owns the terminal; timestamped at INFO; file:line at DEBUG.
_CONSOLE_FORMATS = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
}
_BARE_FORMAT = ("%(message)s", None)
_FILE_FORMAT = ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%Y-%m-%d %H:%M:%S")


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level name from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if environ is None else environ
    return env.get("TOOLPIN_LOG_LEVEL", "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure the ``toolpin`` logger; safe to call more than once.

    Args:
        level: Console level name. Unknown names mean WARNING.
        log_file: Optional path to a log file.
        log_file_level: Level for the log file; defaults to ``level``.
    """
    console_level = level_number(level)
    handlers = [_console_handler(console_level)]

    if log_file:
        file_level = level_number(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))

    logger = logging.getLogger(_LOGGER_NAME)
    for old in logger.handlers:
        old.close()
    logger.handlers = handlers
    logger.setLevel(min(h.level for h in handlers))
    # Keep records out of the root logger and its handlers
    logger.propagate = False

    logging.raiseExceptions = False


def level_number(name: str | None) -> int:
    """``"debug"`` → ``logging.DEBUG``; anything unrecognized → WARNING."""
    number = logging.getLevelName(name.upper()) if name else None
    return number if isinstance(number, int) else logging.WARNING


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _BARE_FORMAT
    for threshold in sorted(_CONSOLE_FORMATS):
        if level <= threshold:
            fmt, datefmt = _CONSOLE_FORMATS[threshold]
            break

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    fmt, datefmt = _FILE_FORMAT
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler
