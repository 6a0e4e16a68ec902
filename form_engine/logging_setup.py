"""Logging setup for running the engine standalone (tests, scripts).

Sends `form_engine.*` loggers to stdout at the configured level. A host that
has already configured the root logger keeps its own handlers.
"""
from __future__ import annotations
import logging
from logging.config import dictConfig

from form_engine.config import get_config


def _dict_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "form_engine": {"level": level, "handlers": ["console"], "propagate": False},
        },
    }


def configure_logging(level: str | None = None) -> None:
    """Configure engine-wide logging once.

    If the root logger already has handlers, return to prevent duplicate output
    (the host owns logging in that case).
    """
    root = logging.getLogger()
    if root.handlers:
        return
    dictConfig(_dict_config(level or get_config().log_level))
