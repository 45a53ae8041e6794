"""Logging setup shared by the API process and the sweep scripts."""
from __future__ import annotations

import logging
import logging.config
from pathlib import Path

from .config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def build_logging_config(level: str, log_file: str | None) -> dict:
    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": level,
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "standard",
            "filename": log_file,
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 5,
            "encoding": "utf-8",
            "level": level,
        }

    handler_names = list(handlers)
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": {"format": LOG_FORMAT}},
        "handlers": handlers,
        "loggers": {
            "hallcrm": {"handlers": handler_names, "level": level, "propagate": False},
            "uvicorn": {"handlers": handler_names, "level": level, "propagate": False},
            "uvicorn.error": {"handlers": handler_names, "level": level, "propagate": False},
        },
        "root": {"handlers": handler_names, "level": level},
    }


def setup_logging() -> None:
    """Install console and rotating-file handlers."""

    log_file = settings.log_file.strip() or None
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(settings.log_level.upper(), log_file))
    logging.getLogger("hallcrm").info("Logging initialized (level=%s)", settings.log_level.upper())
