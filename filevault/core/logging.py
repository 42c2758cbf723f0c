# filevault/core/logging.py
from __future__ import annotations

import json
import logging
from logging.config import dictConfig
from traceback import format_exception

from filevault.core.config import Settings

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 3


class JsonFormatter(logging.Formatter):
    """One JSON object per line; carries ``username``/``file_name`` extras when present."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: dict[str, object] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in ("username", "file_name"):
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            payload["error"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "stack": "".join(format_exception(*record.exc_info)),
            }

        return json.dumps(payload, ensure_ascii=False)


def build_logging_config(settings: Settings) -> dict:
    level = settings.log_level.upper()
    formatter_name = "json" if settings.log_format == "json" else "plain"

    handlers: dict[str, dict] = {
        "stream": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": formatter_name,
        }
    }
    if settings.log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": formatter_name,
            "filename": settings.log_file,
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUP_COUNT,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,  # keep uvicorn & friends
        "formatters": {
            "plain": {
                "format": "%(asctime)s %(levelname)-5s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            },
            "json": {
                "()": JsonFormatter,
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            },
        },
        "handlers": handlers,
        "root": {
            "level": level,
            "handlers": list(handlers),
        },
        "loggers": {
            "uvicorn": {"level": "INFO", "handlers": [], "propagate": True},
            "uvicorn.error": {"level": "INFO", "handlers": [], "propagate": True},
            "uvicorn.access": {"level": "INFO", "handlers": [], "propagate": True},
        },
    }


def setup_logging(settings: Settings) -> None:
    dictConfig(build_logging_config(settings))
