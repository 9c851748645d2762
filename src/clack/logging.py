"""Structured logging for clack.

The editor owns the terminal, so nothing may be printed while it runs.
All diagnostics go through Python's ``logging`` module into a rotating
file instead:

* **RotatingFileHandler** – 5 MB max, 3 backups.
* **Structured JSON** – each line is a JSON object with ``timestamp``,
  ``level``, ``logger``, ``message``, and optional ``context`` fields.
* **Log-level differentiation** – DEBUG for queue activity, WARNING for
  playback failures, ERROR for backends that could not start.
"""

from __future__ import annotations

import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any


# ── Log file path ────────────────────────────────────────────────────

EDITOR_LOG = "/tmp/clack.log"

# ── Rotation settings ────────────────────────────────────────────────

MAX_BYTES = 5 * 1024 * 1024  # 5 MB
BACKUP_COUNT = 3


class _JsonFormatter(logging.Formatter):
    """Emit each log record as a single-line JSON object.

    Fields:
        timestamp  – ISO-8601 with milliseconds
        level      – DEBUG / INFO / WARNING / ERROR / CRITICAL
        logger     – logger name
        message    – the log message
        context    – optional dict with text_preview, row, etc.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        ctx = getattr(record, "context", None)
        if ctx:
            entry["context"] = ctx
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_handler(
    path: str,
    formatter: logging.Formatter,
    max_bytes: int = MAX_BYTES,
    backup_count: int = BACKUP_COUNT,
) -> RotatingFileHandler:
    """Create a RotatingFileHandler that writes to *path*."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    handler = RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setFormatter(formatter)
    return handler


# ── Public helpers ────────────────────────────────────────────────────

# Every clack logger is a child of this one and inherits its handler, so
# --log-file can redirect loggers that modules created at import time.
ROOT_LOGGER = "clack"

_handler: RotatingFileHandler | None = None


def set_log_file(path: str, level: int = logging.DEBUG) -> None:
    """Send all clack logging to *path*, replacing any previous file."""
    global _handler
    root = logging.getLogger(ROOT_LOGGER)
    if _handler is not None:
        root.removeHandler(_handler)
        _handler.close()
    _handler = _make_handler(path, _JsonFormatter())
    _handler.setLevel(level)
    root.addHandler(_handler)
    root.setLevel(level)
    # Stay off the root logger: its default stderr handler would
    # draw over the editor's screen.
    root.propagate = False


def get_logger(name: str, level: int = logging.DEBUG) -> logging.Logger:
    """Return a logger that writes structured JSON to the clack log.

    *name* should start with ``"clack."`` (e.g. ``"clack.scheduler"``)
    so records reach the shared handler.  The first call installs the
    handler on ``EDITOR_LOG`` unless :func:`set_log_file` ran first.
    """
    if _handler is None:
        set_log_file(EDITOR_LOG)
    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger


def log_context(
    *,
    text_preview: str = "",
    duration_ms: float | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a context dict for structured log entries.

    Usage::

        logger.warning("speech failed", extra={"context": log_context(
            text_preview="Hello...", rate_wpm=300,
        )})
    """
    ctx: dict[str, Any] = {}
    if text_preview:
        ctx["text_preview"] = text_preview[:80]
    if duration_ms is not None:
        ctx["duration_ms"] = round(duration_ms, 1)
    ctx.update(extra)
    return ctx
