"""Log output formatting and logger initialisation."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

from cablerelay.osutils import is_tty

_RED = 31
_YELLOW = 33
_BLUE = 34
_GRAY = 37

_COLORS = {
    logging.DEBUG: _GRAY,
    logging.INFO: _BLUE,
    logging.WARNING: _YELLOW,
    logging.ERROR: _RED,
    logging.CRITICAL: _RED,
}

_STRINGS = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "FATAL",
}

_CHARS = {
    logging.DEBUG: "D",
    logging.INFO: "I",
    logging.WARNING: "W",
    logging.ERROR: "E",
    logging.CRITICAL: "F",
}

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}


def _level_key(levelno: int) -> int:
    for level in (logging.CRITICAL, logging.ERROR, logging.WARNING, logging.INFO):
        if levelno >= level:
            return level
    return logging.DEBUG


def _timestamp(created: float) -> str:
    moment = datetime.fromtimestamp(created, timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"


def _fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = getattr(record, "fields", None)
    return dict(fields) if isinstance(fields, dict) else {}


class LogHandler(logging.Handler):
    """Writes one line per record, coloured when the output is a terminal.

    Structured context is taken from a ``fields`` dict passed via ``extra``.
    """

    def __init__(self, stream: IO[str] | None = None, tty: bool = False) -> None:
        super().__init__()
        self.stream = stream if stream is not None else sys.stdout
        self.tty = tty

    def format_record(self, record: logging.LogRecord) -> str:
        """Render a record as a single output line."""
        key = _level_key(record.levelno)
        fields = _fields(record)
        ts = _timestamp(record.created)
        message = record.getMessage()

        if self.tty:
            color = _COLORS[key]
            parts = [f"\033[{color}m{_STRINGS[key]:>6}\033[0m {ts}"]
            parts.extend(
                f" \033[{color}m{name}\033[0m={fields[name]}" for name in sorted(fields)
            )
            parts.append(f" \033[{color}m{message:<25}\033[0m\n")
        else:
            parts = [f"{_CHARS[key]} {ts}"]
            parts.extend(f" {name}={fields[name]}" for name in sorted(fields))
            parts.append(f" {message:<25}\n")

        return "".join(parts)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stream.write(self.format_record(record))
            self.stream.flush()
        except Exception:
            self.handleError(record)


class _JSONHandler(logging.Handler):
    """Writes each record as a JSON object on its own line."""

    def __init__(self, stream: IO[str]) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            key = _level_key(record.levelno)
            entry = {
                "fields": _fields(record),
                "level": _STRINGS[key].lower(),
                "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
                "message": record.getMessage(),
            }
            self.stream.write(json.dumps(entry, default=str) + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


def init_logger(log_format: str, level: str) -> logging.Handler:
    """Set the root log level and install a text or JSON handler on stdout."""
    log_level = _LEVELS.get(level.lower())
    if log_level is None:
        raise ValueError(
            f"Unknown log level: {level}.\n"
            "Available levels are: debug, info, warn, error, fatal"
        )

    root = logging.getLogger()
    root.setLevel(log_level)

    handler: logging.Handler
    if log_format == "text":
        handler = LogHandler(sys.stdout, is_tty())
    elif log_format == "json":
        handler = _JSONHandler(sys.stdout)
    else:
        raise ValueError(
            f"Unknown log format: {log_format}.\n"
            "Avaialable formats are: text, json"
        )

    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)

    return handler