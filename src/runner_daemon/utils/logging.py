"""Logging configuration utilities."""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, TextIO, Union

import structlog


SENSITIVE_KEYS = {
    "password",
    "secret",
    "token",
    "api_key",
    "apikey",
    "authorization",
    "auth",
    "access_key",
    "accesskey",
    "secret_key",
    "secretkey",
}

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVELS = ("debug", "info", "warning", "error", "critical")

LEVEL_ALIASES = {
    "notice": "info",
    "warn": "warning",
    "alert": "critical",
    "emergency": "critical",
    "fatal": "critical",
}

_log_stream: Optional[TextIO] = None


def _redact_sensitive(_, __, event_dict: dict) -> dict:
    """Redact sensitive fields in the structured log."""
    for key in list(event_dict.keys()):
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = "[REDACTED]"
    return event_dict


def _add_process_id(_, __, event_dict: dict) -> dict:
    """Attach the emitting process id, or the one passed as `pid` context."""
    pid = event_dict.pop("pid", None)
    extra = event_dict.setdefault("extra", {})
    extra["pid"] = pid if pid else os.getpid()
    return event_dict


def _render_line(_, __, event_dict: dict) -> str:
    """Render `[ts]\\tchannel.LEVEL\\tmessage\\t{context}\\t{extra}`."""
    timestamp = event_dict.pop("timestamp", "")
    channel = event_dict.pop("channel", "")
    level = str(event_dict.pop("level", "info")).upper()
    message = event_dict.pop("event", "")
    extra = event_dict.pop("extra", {})
    context = json.dumps(event_dict, default=str, sort_keys=True)
    return f"[{timestamp}]\t{channel}.{level}\t{message}\t{context}\t{json.dumps(extra, default=str)}"


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "line",
    log_file: Optional[Union[str, Path]] = None,
) -> None:
    """Configure structured logging to the log file, or stdout when none is given."""
    global _log_stream

    if log_file is not None:
        # Line buffered so records from forked processes interleave whole.
        stream = open(log_file, "a", buffering=1, encoding="utf-8")
        if _log_stream is not None and not _log_stream.closed:
            _log_stream.close()
        _log_stream = stream
    else:
        stream = sys.stdout

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt=TIMESTAMP_FORMAT),
        _add_process_id,
        _redact_sensitive,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer(default=str))
    else:
        processors.append(_render_line)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


class DaemonLogger:
    """Log sink handed to runners and used by both process roles.

    Every record carries the daemon name as its channel and the emitting
    process id. Passing `pid` in the context attributes the record to that
    process instead.
    """

    def __init__(self, channel: str):
        self.channel = channel
        self._logger = structlog.get_logger().bind(channel=channel)

    def record(self, level: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """Write one record at the given level name.

        Syslog style names (notice, alert, emergency) map to the nearest level.
        """
        name = LEVEL_ALIASES.get(level.lower(), level.lower())
        if name not in LEVELS:
            raise ValueError(f"Unknown log level `{level}`")
        self._emit(name, message, context or {})

    def debug(self, message: str, **context: Any) -> None:
        self._emit("debug", message, context)

    def info(self, message: str, **context: Any) -> None:
        self._emit("info", message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._emit("warning", message, context)

    def error(self, message: str, **context: Any) -> None:
        self._emit("error", message, context)

    def exception(self, message: str, **context: Any) -> None:
        self._emit("exception", message, context)

    def _emit(self, method: str, message: str, context: Dict[str, Any]) -> None:
        if "event" in context:
            # `event` holds the message in structlog
            context = dict(context)
            context["context_event"] = context.pop("event")
        getattr(self._logger, method)(message, **context)
