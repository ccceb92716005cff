import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s"
MAX_LOG_BYTES = 10 * 1024 * 1024


class RequestIdFilter(logging.Filter):
    """Give every record a ``request_id`` so the shared format never fails.

    Records logged inside a request carry the id through ``extra``; everything
    else (startup, background retries in tests) is tagged with ``-``.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


def _rotating_file(path: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filters": ["request_id"],
        "filename": str(path),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": 5,
    }


def build_logging_config(log_dir: str, level: str) -> Dict[str, Any]:
    log_path = Path(log_dir)
    app_handlers = ["console", "progress_file", "error_file"]
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_id": {"()": RequestIdFilter},
        },
        "formatters": {
            "detailed": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed",
                "filters": ["request_id"],
                "stream": "ext://sys.stdout",
            },
            "progress_file": _rotating_file(log_path / "progress.log", level),
            "error_file": _rotating_file(log_path / "error.log", "ERROR"),
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        "loggers": {
            "app": {
                "level": level,
                "handlers": app_handlers,
                "propagate": False,
            },
            # Write-conflict retries are routine; keep them visible at INFO.
            "app.core.decorators": {
                "level": "INFO",
                "handlers": app_handlers,
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def configure_logging(log_dir: Optional[str] = None, level: Optional[str] = None) -> None:
    log_dir = log_dir or settings.LOG_DIR
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_dir, level or settings.LOG_LEVEL))
