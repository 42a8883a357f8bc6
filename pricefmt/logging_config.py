"""Logging configuration helpers."""
from __future__ import annotations

from logging.config import dictConfig


def configure_logging(debug: bool = False, level: str | None = None) -> None:
    """Send every log record to the console.

    ``level`` (e.g. from ``LOG_LEVEL``) wins over ``debug``. Rate refreshes go
    through requests, so urllib3 is held at WARNING unless debugging.
    """
    level = (level or ("DEBUG" if debug else "INFO")).upper()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": level,
                }
            },
            "loggers": {
                "urllib3": {"level": level if debug else "WARNING"},
            },
            "root": {"handlers": ["console"], "level": level},
        }
    )
