"""Logging configuration for the session server."""

from __future__ import annotations

import logging
from typing import Any

POLL_PATHS = ("/getState/",)


class PollAccessFilter(logging.Filter):
    """Drop uvicorn access lines for state polls.

    Both players poll several times a second, which would otherwise drown out
    the lines that matter.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "uvicorn.access":
            message = record.getMessage()
            if "GET" in message and any(path in message for path in POLL_PATHS):
                return False
        return True


def get_logging_config(level: str = "INFO") -> dict[str, Any]:
    """Return a ``dictConfig`` mapping for the server and uvicorn loggers."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "poll_access_filter": {"()": PollAccessFilter},
        },
        "formatters": {
            "default": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
            "access": {"format": "%(message)s"},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
                "filters": ["poll_access_filter"],
            },
        },
        "loggers": {
            "uvicorn": {"handlers": ["default"], "level": level, "propagate": False},
            "uvicorn.error": {"handlers": ["default"], "level": level, "propagate": False},
            "uvicorn.access": {"handlers": ["access"], "level": level, "propagate": False},
            "duel": {"handlers": ["default"], "level": level, "propagate": False},
            "server": {"handlers": ["default"], "level": level, "propagate": False},
        },
        "root": {"level": level, "handlers": ["default"]},
    }
