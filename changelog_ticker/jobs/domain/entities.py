"""Job domain entities."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from changelog_ticker.summarization.domain.value_objects import ChangelogDocument, DateRange


class JobStatus(str, Enum):
    """Lifecycle status of a changelog job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# A processing job may be picked up again after its worker died mid-run.
ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING}),
    JobStatus.PROCESSING: frozenset(
        {JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.FAILED}
    ),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


class LogLevel(str, Enum):
    """Severity of a job log entry."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True)
class JobRequest:
    """What the caller asked for."""

    owner: str
    repo: str
    selected_commits: tuple[Any, ...]
    token: str | None = field(default=None, repr=False)
    date_range: DateRange = field(default_factory=DateRange)
    version: str | None = None


@dataclass(frozen=True)
class JobLogEntry:
    """One structured, append-only entry in a job's log."""

    timestamp: str
    stage: str
    event: str
    level: LogLevel = LogLevel.INFO
    message: str = ""
    duration_ms: int | None = None
    metrics: dict[str, Any] = field(default_factory=dict)
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Job:
    """A changelog job and everything recorded about it."""

    id: str
    request: JobRequest
    status: JobStatus = JobStatus.PENDING
    logs: tuple[JobLogEntry, ...] = ()
    output_data: dict[str, Any] | None = None
    artifact: ChangelogDocument | None = None
    error_message: str | None = None
    created_at: str = ""
    updated_at: str = ""

    def can_transition_to(self, target: JobStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]
