"""
Logging setup for the shivvie CLI.

Each applied action logs one INFO line ("Rendering 'a' to 'b'..."), so
INFO is the default console level and those lines print bare. Anything
at WARNING or above gets a level prefix so it stands out between them.

Level precedence (see ``resolve_level``):
    --debug  >  --verbose  >  --quiet  >  SHIVVIE_LOG_LEVEL  >  INFO

A log file (SHIVVIE_LOG_FILE, level SHIVVIE_LOG_FILE_LEVEL) always
gets timestamps and logger names.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping

LEVEL_ENV = "SHIVVIE_LOG_LEVEL"
FILE_ENV = "SHIVVIE_LOG_FILE"
FILE_LEVEL_ENV = "SHIVVIE_LOG_FILE_LEVEL"

_DETAILED = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d  %(message)s"

# Loggers that only matter when debugging shivvie itself
_NOISY_LOGGERS = ("asyncio",)


class ConsoleFormatter(logging.Formatter):
    """Bare progress lines; ``warning: ...`` style prefixes above INFO."""

    def __init__(self, detailed: bool = False):
        super().__init__(_DETAILED if detailed else "%(message)s", datefmt="%H:%M:%S")
        self._detailed = detailed

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if self._detailed or record.levelno < logging.WARNING:
            return text
        return f"{record.levelname.lower()}: {text}"


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level from CLI flags and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = environ if environ is not None else {}
    return env.get(LEVEL_ENV) or "INFO"


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Install the console (and optional file) handler on the root logger.

    Safe to call more than once: previous handlers are replaced.
    """
    console_level = _parse_level(level)
    handlers: list[logging.Handler] = [_console_handler(console_level)]

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # The CLI may outlive the stream it logged to (e.g. under a test runner)
    logging.raiseExceptions = False


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(ConsoleFormatter(detailed=level <= logging.DEBUG))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_DETAILED, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _parse_level(level: str | None) -> int:
    """Level name → number; unknown or empty names mean INFO."""
    numeric = logging.getLevelName(level.upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.INFO
