# backend/app/core/logging_config.py

"""Application logging.

Every module asks for its logger through ``get_logger`` so all records live
under the ``app`` namespace and share one handler. Structured fields are
passed with ``extra=`` and rendered as ``key=value`` pairs after the message.
"""

import logging
from typing import Any, Optional

_LOGGER_PREFIX = "app"

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}

_configured = False


class KeyValueFormatter(logging.Formatter):
    """Single-line formatter that appends ``extra`` fields as key=value."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = {
            k: v for k, v in vars(record).items() if k not in _STDLIB_KEYS
        }
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in sorted(extras.items()))
        return line


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the app namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(level: str = "INFO", handler: Optional[logging.Handler] = None) -> logging.Logger:
    """Install the formatter on the ``app`` logger. Safe to call more than once."""
    global _configured

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    if _configured and handler is None:
        return root

    for h in list(root.handlers):
        root.removeHandler(h)

    h = handler or logging.StreamHandler()
    h.setFormatter(KeyValueFormatter())
    root.addHandler(h)
    root.propagate = False
    _configured = True
    return root


def reset_logging() -> None:
    global _configured

    root = logging.getLogger(_LOGGER_PREFIX)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.propagate = True
    _configured = False


def log_fields(**fields: Any) -> dict[str, Any]:
    """Drop None values so optional context does not clutter records."""
    return {k: v for k, v in fields.items() if v is not None}
