"""Logging for the readiness probe.

Provides:
- JSON or console formatted records on stderr
- A probe log file that is truncated at the start of every invocation, so it
  always holds the diagnostics of the most recent probe cycle
- Probe context (identity, probe id) attached to every record

Usage:
    from switchboard.observability.logging import LogContext, configure_logging

    configure_logging(level="INFO", log_file="/tmp/log-ready-switchboard")

    with LogContext(identity="pod-1", probe_id="1a2b3c4d"):
        logger.info("Listener present")  # Includes identity and probe_id
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

identity_var: contextvars.ContextVar[str] = contextvars.ContextVar("identity", default="")
probe_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("probe_id", default="")

_CONTEXT_VARS: dict[str, contextvars.ContextVar[str]] = {
    "identity": identity_var,
    "probe_id": probe_id_var,
}

# Standard LogRecord attributes, excluded from the extra fields
_STANDARD_ATTRS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "exc_info",
    "exc_text",
    "thread",
    "threadName",
    "taskName",
    "message",
}


def _context() -> dict[str, str]:
    return {key: var.get() for key, var in _CONTEXT_VARS.items() if var.get()}


class JsonFormatter(logging.Formatter):
    """JSON log formatter with probe context.

    Output format:
    {
        "timestamp": "2026-01-10T12:34:56.789Z",
        "level": "INFO",
        "logger": "switchboard.distributed.leader",
        "message": "Extending own claim",
        "identity": "pod-1",
        "probe_id": "1a2b3c4d"
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_context())

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    log_data[key] = value
                except (TypeError, ValueError):
                    log_data[key] = str(value)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter.

    Output format:
    2026-01-10 12:34:56 | INFO     | switchboard.distributed.leader | Extending own claim | pod-1
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        level = f"{record.levelname:8}"

        if self.use_colors:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        message = record.getMessage()
        context = " ".join(_context().values())
        suffix = f" | {context}" if context else ""

        result = f"{timestamp} | {level} | {record.name} | {message}{suffix}"

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


def configure_logging(
    json_format: bool = False,
    level: str = "INFO",
    log_file: str | None = None,
    use_colors: bool = True,
) -> None:
    """Configure process-wide logging for one probe invocation.

    Args:
        json_format: Use JSON format on every handler
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Probe log path; truncated before the first record is written
        use_colors: Use ANSI colors on stderr when it is a terminal
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    if json_format:
        stream_handler.setFormatter(JsonFormatter())
    else:
        stream_handler.setFormatter(
            ConsoleFormatter(use_colors=use_colors and sys.stderr.isatty())
        )
    root_logger.addHandler(stream_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        except OSError as e:
            root_logger.warning(f"Could not open probe log {log_file}: {e}")
        else:
            file_handler.setFormatter(
                JsonFormatter() if json_format else ConsoleFormatter(use_colors=False)
            )
            root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


class LogContext:
    """Context manager for adding temporary probe context.

    Usage:
        with LogContext(identity="pod-1", probe_id="1a2b3c4d"):
            logger.info("Listener present")
    """

    def __init__(self, **kwargs: str) -> None:
        self.extra = kwargs
        self._tokens: dict[str, contextvars.Token[str]] = {}

    def __enter__(self) -> LogContext:
        for key, value in self.extra.items():
            var = _CONTEXT_VARS.get(key)
            if var is not None:
                self._tokens[key] = var.set(value)
        return self

    def __exit__(self, *args: Any) -> None:
        for key, token in self._tokens.items():
            _CONTEXT_VARS[key].reset(token)
        self._tokens.clear()
