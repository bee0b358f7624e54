"""
Centralized logging configuration.

All modules should use ``get_logger(__name__)`` to obtain a logger instance.
The CLI calls ``configure_logging()`` once at startup; until then loggers
fall back to whatever the host process has configured.
"""

import logging
import sys

from rich.logging import RichHandler

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_configured = False

# LOG_LEVEL values accepted besides the stdlib names (pino vocabulary)
_LEVEL_ALIASES = {
    "trace": logging.DEBUG,
    "warn": logging.WARNING,
    "fatal": logging.CRITICAL,
    "silent": logging.CRITICAL + 10,
}


def resolve_level(level: str) -> int | None:
    """Map a LOG_LEVEL value to a logging level, or None if unknown."""
    name = level.strip().lower()
    if name in _LEVEL_ALIASES:
        return _LEVEL_ALIASES[name]
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else None


def configure_logging(level: str = "info", environment: str = "development") -> None:
    """
    Configure the root logger once.

    Outside production, records go through a colorized rich handler;
    production gets a plain single-line format on stdout. Unknown levels
    fall back to INFO with a warning.
    """
    global _configured
    if _configured:
        return

    if environment == "production":
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
    else:
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(name)s | %(message)s", _DATE_FORMAT))

    resolved = resolve_level(level)

    root = logging.getLogger()
    root.setLevel(resolved if resolved is not None else logging.INFO)
    root.addHandler(handler)
    _configured = True

    if resolved is None:
        logging.getLogger(__name__).warning("Unknown LOG_LEVEL %r, using INFO", level)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger instance."""
    return logging.getLogger(name)
