"""Structured JSON logging for the approval system."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

_LOGGER_PREFIX = "approval_system"

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """Handle datetime and Enum values in log payloads."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Structured extra data (skip stdlib internal keys)
        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            if hasattr(exc, "code"):
                payload["exc_code"] = exc.code
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder, default=str)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the approval_system namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(level: int | str = logging.INFO, *, stream=None) -> logging.Logger:
    """Attach a JSON handler to the package root logger.

    Idempotent: a second call only updates the level.
    """
    root = logging.getLogger(_LOGGER_PREFIX)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    root.setLevel(level)

    if not any(getattr(h, "_approval_system_handler", False) for h in root.handlers):
        handler = logging.StreamHandler(stream)
        handler.setFormatter(StructuredFormatter())
        handler._approval_system_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
        root.propagate = False
    return root


def reset_logging() -> None:
    """Remove handlers installed by configure_logging (used in tests)."""
    root = logging.getLogger(_LOGGER_PREFIX)
    for handler in list(root.handlers):
        if getattr(handler, "_approval_system_handler", False):
            root.removeHandler(handler)
    root.propagate = True
