import logging
import logging.config
from pathlib import Path
from typing import Optional

from trivia.core.config import settings


def _rotating(filename: Path, level: str) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "default",
        "level": level,
        "filename": str(filename),
        "maxBytes": 5 * 1024 * 1024,
        "backupCount": 3,
        "encoding": "utf-8",
    }


def configure_logging(log_dir: Optional[Path] = None, log_level: Optional[str] = None):
    log_level = (log_level or settings.log_level).upper()
    log_dir = log_dir or settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": log_level,
            },
            "file": _rotating(log_dir / "app.log", log_level),
            "coordinator_file": _rotating(log_dir / "coordinator.log", log_level),
            "archive_file": _rotating(log_dir / "archive.log", log_level),
        },
        "root": {
            "level": log_level,
            "handlers": ["console", "file"],
        },
        "loggers": {
            "coordinator": {
                "level": log_level,
                "handlers": ["console", "coordinator_file"],
                "propagate": False,
            },
            "archive": {
                "level": log_level,
                "handlers": ["console", "archive_file"],
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(config)
