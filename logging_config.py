"""Logging setup shared by the exporter, uvicorn and httpx."""

from __future__ import annotations

import logging
from logging.config import dictConfig

from settings import get_settings

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

# uvicorn passes an ANSI-coloured duplicate of each message as ``color_message``.
_HIDDEN_EXTRAS = frozenset({"color_message"})

_configured = False


class KeyValueFormatter(logging.Formatter):
    """Renders ``extra=`` fields as ``key=value`` pairs after the message."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        pairs = [
            f"{key}={value}"
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES
            and key not in _HIDDEN_EXTRAS
            and not key.startswith("_")
            and value is not None
        ]
        if not pairs:
            return message
        return f"{message} | {' '.join(pairs)}"


def _routed(level: str | int) -> dict:
    return {"handlers": [], "propagate": True, "level": level}


def configure_logging(level: str | int | None = None) -> None:
    """Install one stderr handler on the root logger and route library loggers to it.

    uvicorn's own handlers are removed so its startup and error lines use the
    same format; request-level chatter from httpx and uvicorn.access is kept
    at WARNING.
    """
    global _configured
    if _configured:
        return

    log_level = level if level is not None else get_settings().log_level
    if isinstance(log_level, str):
        log_level = log_level.upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "key_value": {
                    "()": "logging_config.KeyValueFormatter",
                    "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                }
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "key_value",
                }
            },
            "loggers": {
                "uvicorn": _routed(log_level),
                "uvicorn.error": _routed(log_level),
                "uvicorn.access": _routed("WARNING"),
                "httpx": _routed("WARNING"),
                "httpcore": _routed("WARNING"),
            },
            "root": {"handlers": ["stderr"], "level": log_level},
        }
    )

    _configured = True
