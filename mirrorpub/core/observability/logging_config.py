"""
Logging configuration — one-time setup for the CLI and the server.

Every module does ``logger = logging.getLogger(__name__)`` and inherits
this config.  Levels resolve in precedence order:

    --debug  >  --verbose  >  --quiet  >  MIRRORPUB_LOG_LEVEL  >  WARNING

``mirrorpub serve`` is long-running, so it defaults to INFO instead;
a file copy of the log can be kept via MIRRORPUB_LOG_FILE and
MIRRORPUB_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

ENV_LOG_LEVEL = "MIRRORPUB_LOG_LEVEL"
ENV_LOG_FILE = "MIRRORPUB_LOG_FILE"
ENV_LOG_FILE_LEVEL = "MIRRORPUB_LOG_FILE_LEVEL"

# WARNING and up: just the message
_FMT_MINIMAL = "%(levelname)s: %(message)s"

# INFO: timestamp, thread (worker vs scheduler vs web) and logger
_FMT_VERBOSE = "%(asctime)s [%(threadName)s] %(name)s: %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG: file:line as well
_FMT_DEBUG = "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s:%(lineno)d — %(message)s"

# File output: full date, always detailed
_FMT_FILE = "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are noisy below WARNING
_NOISY_LOGGERS = ("urllib3", "werkzeug")


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    default: str = "WARNING",
) -> str:
    """Pick the console level from CLI flags and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(ENV_LOG_LEVEL, default)


def _console_formatter(level: int) -> logging.Formatter:
    if level <= logging.DEBUG:
        return logging.Formatter(_FMT_DEBUG, datefmt=_DATEFMT_VERBOSE)
    if level <= logging.INFO:
        return logging.Formatter(_FMT_VERBOSE, datefmt=_DATEFMT_VERBOSE)
    return logging.Formatter(_FMT_MINIMAL)


def _file_handler(path: str, level: int) -> logging.FileHandler:
    Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(Path(path).expanduser(), encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Install the process-wide handlers, replacing any earlier setup.

    Args:
        level: Console level name.
        log_file: Also append to this file (its directory is created).
        log_file_level: Level for the file; the console level if unset.
        quiet_third_party: Hold werkzeug and urllib3 at WARNING unless
            the console is at DEBUG.
    """
    console_level = parse_level(level)
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))
    handlers: list[logging.Handler] = [console]

    if log_file:
        file_level = parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    root.handlers[:] = handlers
    # the root must let through whatever the chattiest handler accepts
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def parse_level(level: str | None) -> int:
    """Level name → numeric level; unknown or empty names mean WARNING."""
    return logging.getLevelNamesMapping().get((level or "").upper(), logging.WARNING)
