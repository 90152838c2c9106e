"""
Logging configuration for reve.

Provides structured logging with verbosity levels. Logging is configured lazily
so library users who never call set_verbosity or configure_logging get no
logs unless they configure logging themselves.

Verbosity levels:
- 0 (default): INFO: operations and credit usage only
- 1 (info): INFO + prompt text
- 2 (verbose): DEBUG + prompt text, plus requests, responses, retries

Use set_verbosity(level) or configure_logging(verbose_level, quiet).
REVE_VERBOSITY env (0/1/2) is read when CLI runs or when configure_logging
is called; CLI flags override env.

Separately, the transport's debug trace (enabled with Config.debug) is written
to a LogSink. ConsoleSink is the default; LoggingSink routes the trace into
this module's logger tree instead.
"""

import logging
import os
import sys
from typing import Protocol, TextIO

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "reve"
SINK_PREFIX = "[reve] "

_log_prompts: bool = False
_configured: bool = False


def _ensure_handler() -> None:
    """Add a stderr handler to the root reve logger if not already present."""
    global _configured
    if _configured:
        return
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    _configured = True


def set_verbosity(level: int) -> None:
    """
    Set logging verbosity (0=default, 1=info, 2=verbose).

    - 0: INFO level; operations only (no prompt text).
    - 1: INFO level; same + log prompt text.
    - 2: DEBUG level; same + requests, responses and retries (no secrets).
    """
    global _log_prompts
    _ensure_handler()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if level <= 0:
        root.setLevel(logging.INFO)
        _log_prompts = False
    elif level == 1:
        root.setLevel(logging.INFO)
        _log_prompts = True
    else:
        root.setLevel(logging.DEBUG)
        _log_prompts = True


def log_prompts() -> bool:
    """Return True if prompt text should be logged at INFO (verbosity 1 or 2)."""
    return _log_prompts


def configure_logging(verbose_level: int = 0, quiet: bool = False) -> None:
    """
    Configure logging from CLI or library.

    When quiet is True, sets level to WARNING.
    Otherwise calls set_verbosity(verbose_level).
    """
    global _log_prompts
    _ensure_handler()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if quiet:
        root.setLevel(logging.WARNING)
        _log_prompts = False
        return
    set_verbosity(verbose_level)


def get_verbosity_from_env() -> int:
    """
    Read REVE_VERBOSITY from environment (0, 1, or 2).

    Invalid or missing values return 0.
    """
    raw = os.environ.get("REVE_VERBOSITY", "0").strip()
    if raw == "1":
        return 1
    if raw == "2":
        return 2
    return 0


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under reve (e.g. reve.core.transport)."""
    if name.startswith(ROOT_LOGGER_NAME + ".") or name == ROOT_LOGGER_NAME:
        return logging.getLogger(name)
    return logging.getLogger(ROOT_LOGGER_NAME + "." + name)


class LogSink(Protocol):
    """Destination for the transport's debug trace."""

    def log(self, message: str) -> None:
        """Write one already-formatted trace line."""
        ...


class ConsoleSink:
    """Write trace lines to a stream (stderr by default) with a [reve] prefix."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def log(self, message: str) -> None:
        stream = self._stream if self._stream is not None else sys.stderr
        stream.write(SINK_PREFIX + message + "\n")
        stream.flush()


class LoggingSink:
    """Route trace lines into a logger (reve.transport by default)."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self._logger = logger or get_logger("transport")
        self._level = level

    def log(self, message: str) -> None:
        self._logger.log(self._level, message)


__all__ = [
    "ConsoleSink",
    "LogSink",
    "LoggingSink",
    "configure_logging",
    "get_logger",
    "get_verbosity_from_env",
    "log_prompts",
    "set_verbosity",
]
