"""Structured logging to a stream in console or JSON format."""

from __future__ import annotations

import itertools
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "dpanic": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}

_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}

_counter = itertools.count()


def _level_name(levelno: int) -> str:
    return _NAMES.get(levelno, logging.getLevelName(levelno).lower())


def _timestamp(created: float) -> str:
    return datetime.fromtimestamp(created, timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = getattr(record, "fields", None)
    return dict(fields) if isinstance(fields, dict) else {}


class _ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        parts = [_timestamp(record.created), _level_name(record.levelno), record.getMessage()]
        fields = _fields(record)
        if fields:
            parts.append(json.dumps(fields, default=str))
        line = "\t".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        out: dict[str, Any] = {
            "level": _level_name(record.levelno),
            "ts": _timestamp(record.created),
            "msg": record.getMessage(),
        }
        out.update(_fields(record))
        if record.exc_info:
            out["stacktrace"] = self.formatException(record.exc_info)
        return json.dumps(out, default=str)


def new_logger(level: str, log_format: str, stream: TextIO | None = None) -> logging.Logger:
    """A logger writing to stream (stdout by default).

    log_format "json" writes one JSON object per line; anything else writes
    tab-separated console lines. An unknown level falls back to info.
    Structured fields go in ``extra={"fields": {...}}``.
    """
    logger = logging.Logger(f"cosmosoperator.{next(_counter)}")
    logger.setLevel(_LEVELS.get(level.lower(), logging.INFO))
    logger.propagate = False
    handler = logging.StreamHandler(sys.stdout if stream is None else stream)
    handler.setFormatter(_JSONFormatter() if log_format == "json" else _ConsoleFormatter())
    logger.addHandler(handler)
    return logger