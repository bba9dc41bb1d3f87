from __future__ import annotations

import logging
import time
from enum import Enum
from logging.config import dictConfig
from typing import Any, Iterable, Sequence

from settings import get_settings

# Keys passed through ``extra=`` that are appended to the log line when set.
PLANT_CONTEXT_KEYS = (
    "tick",
    "source",
    "record_index",
    "record_count",
    "subscriber_count",
    "client_id",
    "objective",
    "document_key",
    "reason",
    "status",
    "elapsed_ms",
)

_configured = False


def _render(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, float):
        return f"{value:.3f}".rstrip("0").rstrip(".")
    text = str(value)
    if " " in text:
        return '"' + text.replace('"', "'") + '"'
    return text


class ContextualFormatter(logging.Formatter):
    """Appends ``key=value`` pairs for known plant context keys."""

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        context_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._context_keys: Sequence[str] = tuple(context_keys or PLANT_CONTEXT_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = [
            f"{key}={_render(getattr(record, key))}"
            for key in self._context_keys
            if getattr(record, key, None) is not None
        ]
        if context:
            return f"{message} | {' '.join(context)}"
        return message


def configure_logging(level: str | int | None = None) -> None:
    """Install the contextual handler on the root and uvicorn loggers once."""
    global _configured
    if _configured:
        return

    log_level = level if level is not None else get_settings().log_level
    handler = {"handlers": ["console"], "propagate": False}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "context_keys": list(PLANT_CONTEXT_KEYS),
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": "contextual",
                }
            },
            "loggers": {
                "uvicorn": {**handler, "level": log_level},
                "uvicorn.error": {**handler, "level": log_level},
                "uvicorn.access": {**handler, "level": "WARNING"},
                "httpx": {**handler, "level": "WARNING"},
            },
            "root": {"handlers": ["console"], "level": log_level},
        }
    )

    _configured = True
