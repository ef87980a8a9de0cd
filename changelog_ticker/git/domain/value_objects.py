"""Value objects for Git domain."""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class FileChangeType(str, Enum):
    """Type of file change in a commit."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"
    CHANGED = "changed"
    UNCHANGED = "unchanged"

    @classmethod
    def from_status(cls, status: str | None) -> "FileChangeType":
        """Map a GitHub file status onto a change type."""
        match (status or "").lower():
            case "added":
                return cls.ADDED
            case "removed" | "deleted":
                return cls.DELETED
            case "renamed":
                return cls.RENAMED
            case "copied":
                return cls.COPIED
            case "changed":
                return cls.CHANGED
            case "unchanged":
                return cls.UNCHANGED
            case _:
                return cls.MODIFIED  # Default fallback


class CommitCategory(str, Enum):
    """Changelog category assigned during triage."""

    FEATURES = "features"
    FIXES = "fixes"
    BREAKING = "breaking"
    PERFORMANCE = "performance"
    SECURITY = "security"
    OTHER = "other"


# Fixed order used wherever categories are iterated for output.
CATEGORY_ORDER: tuple[CommitCategory, ...] = (
    CommitCategory.FEATURES,
    CommitCategory.FIXES,
    CommitCategory.BREAKING,
    CommitCategory.PERFORMANCE,
    CommitCategory.SECURITY,
    CommitCategory.OTHER,
)


class SkipReason(str, Enum):
    """Why a commit was left out of processing."""

    COMMIT_NOT_FOUND = "commit_not_found"
    NOT_A_COMMIT = "not_a_commit"
    COMMIT_PARSING_FAILED = "commit_parsing_failed"
    MERGE_COMMIT = "merge_commit"
    BOT_AUTHOR = "bot_author"
    MERGE_AUTO = "merge_auto"
    CHORE_DEPENDENCY = "chore_dependency"
    DOCS_MINOR = "docs_minor"
    TESTS_MINOR = "tests_minor"
    STYLE_FORMATTING = "style_formatting"
    CI_CD = "ci_cd"


_SHA_PATTERN = re.compile(r"^[0-9a-f]{40}$")


def is_valid_sha(value: str) -> bool:
    """Check for a full 40-character hexadecimal commit SHA."""
    return bool(_SHA_PATTERN.match(value.lower()))


@dataclass(frozen=True)
class RepositoryCoordinates:
    """Owner and name of a GitHub repository."""

    owner: str
    name: str

    def __post_init__(self) -> None:
        """Validate the coordinates."""
        if not self.owner or not self.name:
            raise ValueError("Repository owner and name cannot be empty")
        if "/" in self.owner or "/" in self.name:
            raise ValueError(
                f"Invalid repository coordinates '{self.owner}/{self.name}'. "
                "Pass owner and name separately."
            )

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, full_name: str) -> "RepositoryCoordinates":
        """Build coordinates from an ``owner/name`` string."""
        owner, sep, name = full_name.strip().partition("/")
        if not sep:
            raise ValueError(f"Expected 'owner/name', got '{full_name}'")
        return cls(owner=owner, name=name)


@dataclass(frozen=True)
class FileChange:
    """Information about a file change in a commit."""

    filename: str
    status: FileChangeType
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str | None = None
    previous_filename: str | None = None  # For renamed/copied files


def parse_github_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp as returned by GitHub into an aware datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class CommitNodeBatch:
    """Raw GraphQL nodes of one batched query, aligned with the requested SHAs."""

    shas: tuple[str, ...]
    nodes: tuple[dict[str, Any] | None, ...]
