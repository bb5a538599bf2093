"""Structured logging configuration for keypack.

Provides JSON and text formatters, a filter that scrubs key material
and passwords from every record, and a one-call ``configure_logging``
function driven by config settings.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from keypack.logging.sanitize import REDACTED, is_secret_key, sanitize_for_logs, sanitize_text

if TYPE_CHECKING:
    from keypack.config.settings import LoggingSettings

# Attributes that are part of the standard LogRecord; everything
# else is "extra" and gets included in structured output.
_STANDARD_ATTRS = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter.

    Every record becomes a single JSON object on one line containing
    the standard fields plus any *extra* attributes passed by the caller
    (``operation``, ``duration_ms``, ``key_type`` and the like).
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        data: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created,
                tz=UTC,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                data.setdefault(key, value)

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for console use."""

    _FMT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class SensitiveDataFilter(logging.Filter):
    """Scrub PEM bodies and password values from every log record.

    The message, its arguments and any extra attributes are rewritten
    in place; the record itself is never dropped.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if isinstance(record.msg, str):
            record.msg = sanitize_text(record.msg)

        if isinstance(record.args, dict):
            record.args = sanitize_for_logs(record.args)
        elif isinstance(record.args, tuple):
            record.args = tuple(sanitize_for_logs(arg) for arg in record.args)

        for key, value in list(record.__dict__.items()):
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            if is_secret_key(key):
                setattr(record, key, REDACTED)
            else:
                setattr(record, key, sanitize_for_logs(value))

        return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Configure the ``keypack`` logger hierarchy from settings.

    Replaces any existing handlers with a single stderr handler.

    Returns the root ``keypack`` logger.
    """
    level = getattr(logging, settings.level.upper(), logging.INFO)

    root = logging.getLogger("keypack")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    formatter: logging.Formatter
    formatter = StructuredFormatter() if settings.format == "json" else TextFormatter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(SensitiveDataFilter())
    root.addHandler(console)

    return root
