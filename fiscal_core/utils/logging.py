"""
Logging setup shared by the CLI, repositories, collector and mutation executor.

Modules log tagged messages with structured context passed through `extra=`:

    log = get_logger(__name__)
    log.info("[SWEEP COMPLETE] documents", extra={"pages": 3, "items": 14})

The console formatter appends that context as `key=value` pairs; the JSON
formatter (LOG_JSON=true) emits it as top-level keys. Values under keys that
look like credentials are masked in both.

Usage:
    from fiscal_core.utils.logging import configure_logging

    configure_logging(level="DEBUG", json_logs=True)
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_RESERVED = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "extra"}

_SECRET_HINTS = ("token", "authorization", "password", "secret")
_MASK = "***"

# Chatty third-party loggers, kept at WARNING unless the root level is DEBUG.
_NOISY_LOGGERS = ("httpx", "httpcore")


def _masked(key: str, value: Any) -> Any:
    return _MASK if any(hint in key.lower() for hint in _SECRET_HINTS) else value


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    """Structured fields attached to `record`, secrets masked."""
    fields = {
        key: _masked(key, value)
        for key, value in vars(record).items()
        if key not in _RESERVED and not key.startswith("_")
    }
    # Older call sites pass a single `extra` dict attribute.
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        fields.update({key: _masked(key, value) for key, value in nested.items()})
    return fields


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as a JSON string."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    payload.update(_context(record))
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


class ConsoleFormatter(logging.Formatter):
    """Human format with the record's structured context appended."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        line = super().format(record)
        fields = _context(record)
        if not fields:
            return line
        rendered = " ".join(f"{key}={value}" for key, value in fields.items())
        head, sep, tail = line.partition("\n")
        return f"{head} | {rendered}{sep}{tail}"


def _logging_config(level: str, json_logs: bool) -> Dict[str, Any]:
    level = level.upper()
    third_party = level if level == "DEBUG" else "WARNING"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "()": ConsoleFormatter,
                "fmt": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                "datefmt": "%H:%M:%S",
            },
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "json" if json_logs else "console",
                "level": level,
            }
        },
        "loggers": {name: {"level": third_party} for name in _NOISY_LOGGERS},
        "root": {"handlers": ["default"], "level": level},
    }


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure root logging for a CLI run.

    Parameters
    ----------
    level : str
        Logging level name (e.g., "DEBUG", "INFO", "WARNING").
    json_logs : bool
        Emit JSON lines instead of the console format.
    """
    logging.config.dictConfig(_logging_config(level, json_logs))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with the given name. If name is None, returns the root logger.
    """
    return logging.getLogger(name)


__all__ = ["ConsoleFormatter", "JsonFormatter", "configure_logging", "get_logger"]
