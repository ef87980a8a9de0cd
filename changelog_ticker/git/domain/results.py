"""Results of the commit fetch, triage and detail fetch steps."""

from dataclasses import dataclass, field

from changelog_ticker.git.domain.entities import (
    CommitSummary,
    CommitWithDetail,
    FilteredCommitSummary,
    SkippedCommit,
)
from changelog_ticker.git.domain.value_objects import CommitCategory
from changelog_ticker.utils.audit import AuditLogEntry


@dataclass(frozen=True)
class CommitFetchMetrics:
    """Counters of one metadata fetch run."""

    requested: int
    fetched: int
    skipped: int
    batches: int
    retries: int


@dataclass(frozen=True)
class CommitFetchResult:
    """Commits resolved by the batched fetch, in fetch order."""

    commits: tuple[CommitSummary, ...]
    skipped: tuple[SkippedCommit, ...]
    metrics: CommitFetchMetrics
    logs: tuple[AuditLogEntry, ...] = ()


@dataclass(frozen=True)
class TriageMetrics:
    """Counters of one triage run."""

    total_input: int
    total_retained: int
    total_skipped: int
    reduction_percent: int
    category_breakdown: dict[CommitCategory, int] = field(default_factory=dict)


@dataclass(frozen=True)
class TriageResult:
    """Retained commits sorted by importance, plus the excluded ones."""

    retained: tuple[FilteredCommitSummary, ...]
    grouped: dict[CommitCategory, tuple[FilteredCommitSummary, ...]]
    skipped: tuple[SkippedCommit, ...]
    metrics: TriageMetrics


@dataclass(frozen=True)
class DetailFetchFailure:
    """A retained commit whose detail could not be fetched."""

    sha: str
    message: str


@dataclass(frozen=True)
class DetailFetchMetrics:
    """Counters of one detail fetch run."""

    requested: int
    fetched: int
    failed: int
    batches: int
    pacing_wait_seconds: float


@dataclass(frozen=True)
class DetailFetchResult:
    """Retained commits paired with their detail, in triage order."""

    commits: tuple[CommitWithDetail, ...]
    failures: tuple[DetailFetchFailure, ...]
    metrics: DetailFetchMetrics
    logs: tuple[AuditLogEntry, ...] = ()
