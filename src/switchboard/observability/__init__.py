"""Observability for the switchboard leader probe.

Provides:
- configure_logging: stderr plus per-invocation probe log file
- LogContext: identity and probe id on every record
"""

from switchboard.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
)

__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "LogContext",
    "configure_logging",
]
