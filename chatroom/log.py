"""Structured JSON logging for the chat server.

Every record is emitted as one JSON line; ``extra={"data": {...}}`` is merged
into the entry under ``data``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "data"):
            entry["data"] = record.data  # type: ignore[attr-defined]
        if record.exc_info and record.exc_info[1]:
            entry["error"] = str(record.exc_info[1])
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(
    log_dir: Path | None = None,
    level: int | str = logging.INFO,
    stderr_level: int | str = logging.WARNING,
) -> logging.Logger:
    """Configure the ``chatroom`` logger.

    Args:
        log_dir: Directory for a JSON-lines log file. If None, logs to stderr only.
        level: Logging level, as a number or a name such as ``"DEBUG"``.
        stderr_level: Threshold for the stderr handler. The file handler, when
            there is one, takes everything at ``level``.

    Returns:
        The root 'chatroom' logger.
    """
    logger = logging.getLogger("chatroom")
    logger.setLevel(level)

    if logger.handlers:
        return logger

    fmt = JSONFormatter()

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / "chatroom.jsonl", encoding="utf-8")
        fh.setFormatter(fmt)
        fh.setLevel(level)
        logger.addHandler(fh)

    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    sh.setLevel(stderr_level)
    logger.addHandler(sh)

    return logger


__all__ = ["JSONFormatter", "setup_logging"]
