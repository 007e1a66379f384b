"""
Gateway log severity translation.

The gateway reports its own diagnostics with six severities; the host logs
with the five stdlib levels. VERBOSE and DEBUG both land on DEBUG.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from beacon.core.exceptions import UnknownSeverityError


class LogSeverity(Enum):
    CRITICAL = 0
    ERROR = 1
    WARNING = 2
    INFO = 3
    VERBOSE = 4
    DEBUG = 5

    @classmethod
    def from_logging_level(cls, levelno: int) -> "LogSeverity":
        """Map a discord.py stdlib record level onto the gateway severities."""
        if levelno >= logging.CRITICAL:
            return cls.CRITICAL
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARNING
        if levelno >= logging.INFO:
            return cls.INFO
        if levelno >= logging.DEBUG:
            return cls.DEBUG
        return cls.VERBOSE


_LEVELS = {
    LogSeverity.CRITICAL: logging.CRITICAL,
    LogSeverity.ERROR: logging.ERROR,
    LogSeverity.WARNING: logging.WARNING,
    LogSeverity.INFO: logging.INFO,
    LogSeverity.VERBOSE: logging.DEBUG,
    LogSeverity.DEBUG: logging.DEBUG,
}


def to_log_level(severity: LogSeverity) -> int:
    """
    Translate a gateway severity to a stdlib logging level.

    Raises
    ------
    UnknownSeverityError
        If ``severity`` is not a LogSeverity member.
    """
    try:
        return _LEVELS[severity]
    except (KeyError, TypeError):
        raise UnknownSeverityError(severity) from None


@dataclass(frozen=True)
class GatewayLogMessage:
    """One diagnostic event emitted by the gateway."""

    severity: LogSeverity
    source: str
    message: str
    exception: Optional[BaseException] = None
