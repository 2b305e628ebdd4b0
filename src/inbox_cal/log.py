"""Logging setup for inbox-cal.

All modules log through ``logging.getLogger(__name__)``; this module only
configures the root logger once for the CLI.  The HTTP and SDK libraries
used by the LLM clients are chatty at INFO, so they are held at WARNING
unless debug logging is requested.
"""

from __future__ import annotations

import logging
import sys

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Marks the handler installed here so repeated setup calls reuse it.
_HANDLER_ATTR = "_inbox_cal_log_handler"

_NOISY_LOGGERS = ("httpx", "httpcore", "google_genai")


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with the inbox-cal formatter.

    Writes to *stderr* so that JSON printed by the CLI on *stdout* stays
    machine-readable.  Safe to call more than once.

    Args:
        level: A standard logging level name (e.g. ``"DEBUG"``).

    Raises:
        ValueError: If *level* is not a recognised logging level string.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level!r}")

    root = logging.getLogger()
    root.setLevel(numeric_level)

    library_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    existing = [h for h in root.handlers if getattr(h, _HANDLER_ATTR, False)]
    if existing:
        existing[0].setLevel(numeric_level)
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
    setattr(handler, _HANDLER_ATTR, True)
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return the logger named *name* (normally the caller's ``__name__``)."""
    return logging.getLogger(name)
