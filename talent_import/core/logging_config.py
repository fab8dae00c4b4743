"""
Logging setup shared by the API, the console and the import pipeline.

Every module logs through ``logging.getLogger(__name__)``; this module only
wires the handlers once per process.
"""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Optional

# Client libraries that log every HTTP round-trip at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "urllib3")

_is_configured = False


def configure_logging(level: Optional[str] = None, *, force: bool = False) -> None:
    """
    Configure the root and ``talent_import`` loggers.

    Args:
        level: Log level name (e.g. "DEBUG"); defaults to INFO.
        force: Reconfigure even if logging was already set up (used by the console).
    """
    global _is_configured

    if _is_configured and not force:
        return

    log_level = (level or "INFO").upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "pipeline": {
                    "format": "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                }
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "formatter": "pipeline",
                    "stream": "ext://sys.stdout",
                    "level": log_level,
                }
            },
            "loggers": {
                "talent_import": {"level": log_level},
                **{name: {"level": "WARNING"} for name in NOISY_LOGGERS},
            },
            "root": {
                "handlers": ["stdout"],
                "level": log_level,
            },
        }
    )

    _is_configured = True
