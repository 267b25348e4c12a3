"""
Logging setup — configured once by the CLI before any command runs.

Modules log through ``logging.getLogger(__name__)`` and inherit whatever
handlers ``setup_logging`` installs on the root logger.

Level precedence:
    --debug / --verbose / --quiet  >  HELIX_LOG_LEVEL  >  WARNING

HELIX_LOG_FILE adds a file handler; HELIX_LOG_FILE_LEVEL sets its level
independently of the console.
"""

from __future__ import annotations

import logging
import sys

ENV_LOG_LEVEL = "HELIX_LOG_LEVEL"
ENV_LOG_FILE = "HELIX_LOG_FILE"
ENV_LOG_FILE_LEVEL = "HELIX_LOG_FILE_LEVEL"

_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d - %(message)s"

# (max level, format, datefmt): first row whose level is >= the console level
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)

_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Libraries that chatter below WARNING
_CHATTY_LOGGERS = ("urllib3", "asyncio", "charset_normalizer")


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = next(
        (f, d) for ceiling, f, d in _CONSOLE_FORMATS if level <= ceiling
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_DETAILED, datefmt=_FILE_DATEFMT))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Install console (and optional file) handlers on the root logger.

    Args:
        level: Console level name.
        log_file: Also write records to this file.
        log_file_level: Level for the file; defaults to ``level``.
        quiet_third_party: Hold chatty library loggers at WARNING
            unless the console runs at DEBUG.
    """
    console_level = parse_level(level)
    handlers = [_console_handler(console_level)]

    if log_file:
        file_level = parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    for handler in handlers:
        root.addHandler(handler)
    # the root must pass everything the most verbose handler wants
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _CHATTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env_level: str | None = None,
) -> str:
    """Pick the console level name from CLI flags and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return env_level or "WARNING"


def parse_level(level: str | None) -> int:
    """Level name → numeric level; unknown or empty names mean WARNING."""
    numeric = logging.getLevelName(level.upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
