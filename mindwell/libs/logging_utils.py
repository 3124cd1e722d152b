"""Logging setup shared by the API and the workflow worker.

Two console formats are supported: one JSON object per line for
production log shipping, and colored text for local runs. Workflow code
logs with ``extra={"handler": ..., "delivery_id": ..., "step": ...}``;
the text format appends that context so a delivery can be followed by
eye, while the JSON format emits it as top-level keys.
"""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from logging.config import dictConfig
from typing import Any, Dict

DEV_ENVIRONMENTS = frozenset({"local", "dev", "test"})

# Workflow context appended to text lines, in this order.
DELIVERY_CONTEXT = ("delivery_id", "step", "attempt")

_ANSI_ESCAPE = re.compile(r"\033\[[0-9;]*m")

_COLOR_CODES = {
    "red": "\033[31m",
    "yellow": "\033[33m",
    "green": "\033[32m",
    "cyan": "\033[36m",
}

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _environment() -> str:
    return os.getenv("MINDWELL_ENVIRONMENT", "dev").lower()


def _color_enabled() -> bool:
    flag = os.getenv("MINDWELL_LOG_COLOR", "")
    if flag:
        return flag == "1"
    return _environment() in DEV_ENVIRONMENTS


COLOR_ENABLED = _color_enabled()


def colorize(text: str, color: str = "red") -> str:
    if not COLOR_ENABLED:
        return text
    prefix = _COLOR_CODES.get(color, "")
    return f"{prefix}{text}\033[0m" if prefix else text


def strip_colors(text: str) -> str:
    return _ANSI_ESCAPE.sub("", text)


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields passed through ``extra=`` on the logging call."""

    return {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}


class JsonFormatter(logging.Formatter):
    """One JSON object per record; extras become top-level keys.

    Messages built with ``colorize`` are stored without their escape codes.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": strip_colors(record.getMessage()),
        }
        payload.update(record_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ColorTextFormatter(logging.Formatter):
    """Console formatter: level colors plus the workflow delivery context."""

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        extras = record_extras(record)
        context = " ".join(f"{key}={extras[key]}" for key in DELIVERY_CONTEXT if extras.get(key) is not None)
        if context:
            formatted = f"{formatted} [{context}]"
        if record.levelno >= logging.ERROR:
            return colorize(strip_colors(formatted), "red")
        if record.levelno >= logging.WARNING:
            return colorize(formatted, "yellow")
        return formatted


def logging_config(*, level: str | None = None, fmt: str | None = None) -> Dict[str, Any]:
    """dictConfig mapping for the console handler; arguments override the environment."""

    default_level = "DEBUG" if _environment() in DEV_ENVIRONMENTS else "INFO"
    log_level = (level or os.getenv("MINDWELL_LOG_LEVEL", default_level)).upper()
    log_format = (fmt or os.getenv("MINDWELL_LOG_FORMAT", "json")).lower()

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JsonFormatter},
            "text": {
                "()": ColorTextFormatter,
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json" if log_format == "json" else "text",
                "level": log_level,
            }
        },
        "loggers": {
            "httpx": {"level": "WARNING"},
            "rq.worker": {"level": "INFO"},
        },
        "root": {"handlers": ["console"], "level": log_level},
    }


def configure_logging(*, level: str | None = None, fmt: str | None = None) -> None:
    dictConfig(logging_config(level=level, fmt=fmt))


__all__ = [
    "ColorTextFormatter",
    "DELIVERY_CONTEXT",
    "JsonFormatter",
    "colorize",
    "configure_logging",
    "logging_config",
    "record_extras",
    "strip_colors",
]
