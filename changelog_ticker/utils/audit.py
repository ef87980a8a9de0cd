"""Structured audit log accumulated by each pipeline stage."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class AuditLevel(str, Enum):
    """Severity of an audit entry."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"


_LOGGING_LEVELS = {
    AuditLevel.INFO: logging.INFO,
    AuditLevel.WARN: logging.WARNING,
    AuditLevel.ERROR: logging.ERROR,
}


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class AuditLogEntry:
    """One structured event recorded by a stage."""

    timestamp: str
    level: AuditLevel
    message: str
    details: dict[str, Any] = field(default_factory=dict)


class AuditLog:
    """
    Append-only list of audit entries for one stage run.

    Every entry is mirrored to the given logger so that command-line runs
    show the same events that end up in the job log.
    """

    def __init__(
        self,
        logger: logging.Logger,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._logger = logger
        self._clock = clock
        self._entries: list[AuditLogEntry] = []

    def info(self, message: str, /, **details: Any) -> None:
        self._push(AuditLevel.INFO, message, details)

    def warn(self, message: str, /, **details: Any) -> None:
        self._push(AuditLevel.WARN, message, details)

    def error(self, message: str, /, **details: Any) -> None:
        self._push(AuditLevel.ERROR, message, details)

    @property
    def entries(self) -> tuple[AuditLogEntry, ...]:
        return tuple(self._entries)

    def tail(self, count: int) -> tuple[AuditLogEntry, ...]:
        if count <= 0:
            return ()
        return tuple(self._entries[-count:])

    def _push(self, level: AuditLevel, message: str, details: dict[str, Any]) -> None:
        self._entries.append(
            AuditLogEntry(
                timestamp=self._clock(),
                level=level,
                message=message,
                details=details,
            )
        )
        if details:
            self._logger.log(_LOGGING_LEVELS[level], "%s %s", message, details)
        else:
            self._logger.log(_LOGGING_LEVELS[level], "%s", message)
