"""Logging bootstrap for the facepay controller."""
from __future__ import annotations

import logging
from logging.config import dictConfig
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import Settings

RUNTIME_LOG_NAME = "facepay-runtime.log"
PACKAGE_LOGGER = "facepay"

# Third-party loggers that are too chatty at INFO for a payment kiosk
_QUIET_LOGGERS = ("httpx", "httpcore")


def configure_logging(settings: Settings) -> Path:
    """Console plus a daily-rotated runtime log; returns the log file path.

    ``log_level`` applies to the root logger, ``package_log_level`` (when set)
    to ``facepay.*`` only.
    """
    root_level = settings.log_level
    package_level = settings.package_log_level or root_level

    log_dir = Path(settings.log_directory).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / RUNTIME_LOG_NAME

    loggers = {name: {"level": "WARNING"} for name in _QUIET_LOGGERS}
    loggers[PACKAGE_LOGGER] = {"level": package_level}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                }
            },
            # Handlers pass everything; levels are decided per logger
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
                "runtime_file": {
                    "class": "logging.handlers.TimedRotatingFileHandler",
                    "formatter": "default",
                    "filename": str(log_file),
                    "when": "midnight",
                    "backupCount": max(int(settings.log_retention_days), 1),
                    "utc": True,
                    "delay": True,
                    "encoding": "utf-8",
                },
            },
            "loggers": loggers,
            "root": {"level": root_level, "handlers": ["console", "runtime_file"]},
        }
    )
    logging.getLogger(__name__).debug(
        "Logging configured (root=%s, %s=%s, file=%s)", root_level, PACKAGE_LOGGER, package_level, log_file
    )
    return log_file


__all__ = ["configure_logging", "RUNTIME_LOG_NAME"]
