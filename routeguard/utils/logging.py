"""routeguard logging utilities.

Every subsystem emits JSON logs to a rotating file while the console gets
Rich output. Guard decisions carry structured context (the evaluated path, the
decision and the resulting behaviour) so a navigation can be traced end to end
by filtering on ``session_id``.
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

CONTEXT_KEYS = ("session_id", "path", "decision", "behave", "resource")


class JsonFormatter(logging.Formatter):
    """Format log records as JSON documents.

    The payload stays lean: timestamp, severity, logger name and message, plus
    whichever guard context keys were passed through ``extra``.
    """

    default_time_format = "%Y-%m-%dT%H:%M:%S"

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                self.default_time_format
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)
        for key in CONTEXT_KEYS:
            if key in record.__dict__:
                payload[key] = str(record.__dict__[key])
        return json.dumps(payload, ensure_ascii=False)


def _build_handlers(log_dir: Path, enable_rich: bool) -> Dict[str, Dict[str, Any]]:
    handlers: Dict[str, Dict[str, Any]] = {
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "json",
            "filename": str(log_dir / "routeguard.log"),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 5,
        }
    }
    if enable_rich:
        handlers["console"] = {
            "class": "rich.logging.RichHandler",
            "formatter": "rich",
            "level": "DEBUG",
            "rich_tracebacks": True,
            "show_path": False,
        }
    else:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": "json",
        }
    return handlers


def configure_logging(*, level: str = "INFO", log_dir: Optional[Path] = None) -> None:
    """Configure global logging for routeguard.

    Parameters
    ----------
    level:
        Minimum severity that should be emitted. Accepts standard logging level
        names.
    log_dir:
        Directory where persistent logs are written. When omitted the function
        falls back to ``$ROUTEGUARD_LOG_DIR`` or ``.routeguard/logs`` within the
        user's home directory.

    Calling it again replaces the previous configuration, so tests can
    reconfigure logging freely.
    """

    log_dir = log_dir or Path(
        os.environ.get("ROUTEGUARD_LOG_DIR", Path.home() / ".routeguard" / "logs")
    )
    log_dir.mkdir(parents=True, exist_ok=True)

    enable_rich = os.environ.get("ROUTEGUARD_RICH", "1") != "0"
    handlers = _build_handlers(log_dir, enable_rich)

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "routeguard.utils.logging.JsonFormatter",
            },
            "rich": {
                "format": "%(message)s",
                "datefmt": "%H:%M:%S",
            },
        },
        "handlers": handlers,
        "root": {
            "level": level,
            "handlers": list(handlers.keys()),
        },
    }

    logging.config.dictConfig(config)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for ``name`` sharing the global configuration."""

    return logging.getLogger(name)


class ContextAdapter(logging.LoggerAdapter):
    """Merge fixed guard context into the ``extra`` of every record."""

    def process(self, msg: Any, kwargs: Any) -> Any:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def bind_logger(name: str, **context: Any) -> ContextAdapter:
    """Return a logger that tags every record with ``context``."""

    return ContextAdapter(get_logger(name), context)


__all__ = ["ContextAdapter", "JsonFormatter", "bind_logger", "configure_logging", "get_logger"]
