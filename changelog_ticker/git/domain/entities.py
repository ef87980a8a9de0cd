"""Git domain entities."""

from dataclasses import dataclass
from datetime import datetime

from changelog_ticker.git.domain.value_objects import CommitCategory, FileChange


@dataclass(frozen=True)
class CommitSummary:
    """Commit metadata resolved by the batched fetch."""

    sha: str
    message: str
    headline: str
    author_name: str | None
    author_email: str | None
    author_login: str | None
    author_is_bot: bool
    committer_name: str | None
    committer_email: str | None
    committer_login: str | None
    authored_date: datetime
    committed_date: datetime
    additions: int
    deletions: int
    total_changes: int
    files_changed: int
    parent_count: int


@dataclass(frozen=True)
class FilteredCommitSummary(CommitSummary):
    """Commit retained by triage, with its category and importance."""

    category: CommitCategory = CommitCategory.OTHER
    importance_score: int = 5

    @classmethod
    def from_summary(
        cls, summary: CommitSummary, category: CommitCategory, importance_score: int
    ) -> "FilteredCommitSummary":
        return cls(
            sha=summary.sha,
            message=summary.message,
            headline=summary.headline,
            author_name=summary.author_name,
            author_email=summary.author_email,
            author_login=summary.author_login,
            author_is_bot=summary.author_is_bot,
            committer_name=summary.committer_name,
            committer_email=summary.committer_email,
            committer_login=summary.committer_login,
            authored_date=summary.authored_date,
            committed_date=summary.committed_date,
            additions=summary.additions,
            deletions=summary.deletions,
            total_changes=summary.total_changes,
            files_changed=summary.files_changed,
            parent_count=summary.parent_count,
            category=category,
            importance_score=importance_score,
        )


@dataclass(frozen=True)
class SkippedCommit:
    """Commit left out of processing, with every reason that applied."""

    sha: str
    reasons: tuple[str, ...]
    message: str | None = None
    author_login: str | None = None
    committed_date: datetime | None = None


@dataclass(frozen=True)
class CommitDetail:
    """Full per-file change list of one commit."""

    sha: str
    message: str
    author_name: str | None
    author_email: str | None
    authored_date: datetime | None
    files: tuple[FileChange, ...]


@dataclass(frozen=True)
class CommitWithDetail:
    """Triaged commit paired with its fetched detail."""

    summary: FilteredCommitSummary
    detail: CommitDetail
