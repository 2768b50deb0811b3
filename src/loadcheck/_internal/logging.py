"""Logging for loadcheck: one stderr handler, text or JSON, with iteration context."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import IO, Any

# Attributes the driver attaches via ``extra=`` to per-iteration records
CONTEXT_FIELDS = ("vu", "suffix", "url", "status")

_TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Return the iteration context fields present on *record*, in order."""
    return {field: getattr(record, field) for field in CONTEXT_FIELDS if hasattr(record, field)}


class _JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Keys are timestamp, level, logger and message, followed by any of
    ``vu``, ``suffix``, ``url`` and ``status`` set on the record, and
    ``exception`` when the record carries one.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(_record_context(record))
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


class _TextFormatter(logging.Formatter):
    """Human-readable lines with iteration context appended as ``key=value``."""

    def __init__(self) -> None:
        super().__init__(_TEXT_FORMAT, datefmt=_DATE_FORMAT)

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        line = super().formatMessage(record)
        context = _record_context(record)
        if context:
            line += " [" + " ".join(f"{key}={value}" for key, value in context.items()) + "]"
        return line


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Configure and return the ``loadcheck`` logger.

    The logger owns a single stream handler and does not propagate. A
    later call reuses that handler and applies the new level and format,
    so the CLI and ``run_load_test`` can both call this.

    Args:
        level: Logging level. Defaults to INFO.
        json_format: Emit JSON lines instead of text.
        stream: Where to write. Defaults to stderr; only used when the
            handler is first created.

    Returns:
        The ``loadcheck`` logger.
    """
    logger = logging.getLogger("loadcheck")
    logger.setLevel(level)
    logger.propagate = False

    if logger.handlers:
        handler = logger.handlers[0]
    else:
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        logger.addHandler(handler)

    handler.setLevel(level)
    handler.setFormatter(_JsonFormatter() if json_format else _TextFormatter())
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``loadcheck.<name>``, e.g. ``get_logger("engine.driver")``."""
    return logging.getLogger(f"loadcheck.{name}")
