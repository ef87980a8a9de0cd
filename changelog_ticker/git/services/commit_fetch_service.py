"""Service resolving commit SHAs into commit summaries through batched queries."""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from changelog_ticker.config import FetchConfig
from changelog_ticker.errors import TransientCommitSourceError
from changelog_ticker.git.domain.entities import CommitSummary, SkippedCommit
from changelog_ticker.git.domain.results import CommitFetchMetrics, CommitFetchResult
from changelog_ticker.git.domain.value_objects import (
    RepositoryCoordinates,
    SkipReason,
    is_valid_sha,
    parse_github_datetime,
)
from changelog_ticker.git.repositories.interfaces import CommitSourceRepository
from changelog_ticker.utils.audit import AuditLog
from changelog_ticker.utils.retry import RetryConfig, retry_async

logger = logging.getLogger(__name__)

_BOT_MARKERS = (
    "[bot]",
    "bot@",
    "actions@github.com",
    "github-actions",
    "dependabot",
    "renovate",
    "automation",
)
_BOT_TOKEN = re.compile(r"\bbot\b")


def extract_commit_shas(selected: Iterable[Any]) -> tuple[list[str], list[str]]:
    """
    Normalize the selected commits into a list of unique valid SHAs.

    Entries may be SHA strings or mappings carrying ``sha`` or ``commit.sha``.

    Args:
        selected: Commit identifiers as supplied by the caller

    Returns:
        Tuple of (valid SHAs in first-seen order, invalid entries as strings)
    """
    valid: list[str] = []
    invalid: list[str] = []
    seen: set[str] = set()

    for entry in selected:
        candidate: Any = entry
        if isinstance(entry, dict):
            candidate = entry.get("sha")
            if candidate is None and isinstance(entry.get("commit"), dict):
                candidate = entry["commit"].get("sha")

        if not isinstance(candidate, str) or not is_valid_sha(candidate.strip()):
            invalid.append(str(candidate if candidate is not None else entry))
            continue

        sha = candidate.strip().lower()
        if sha in seen:
            continue
        seen.add(sha)
        valid.append(sha)

    return valid, invalid


def detect_bot(login: str | None, name: str | None, email: str | None) -> bool:
    """Check whether the author identity looks like an automation account."""
    combined = " ".join(part for part in (login, name, email) if part).lower()
    if not combined:
        return False
    if any(marker in combined for marker in _BOT_MARKERS):
        return True
    return bool(_BOT_TOKEN.search(combined))


def _first_date(*values: Any) -> datetime | None:
    for value in values:
        if isinstance(value, str):
            parsed = parse_github_datetime(value)
            if parsed is not None:
                return parsed
    return None


def map_commit_node(
    sha: str,
    node: dict[str, Any],
    now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> CommitSummary | None:
    """
    Map one GraphQL commit node onto a CommitSummary.

    Args:
        sha: The requested SHA the node was resolved from
        node: Raw ``Commit`` node
        now: Clock used when the node carries no usable timestamp

    Returns:
        CommitSummary, or None if the node cannot be mapped
    """
    oid = node.get("oid")
    if not isinstance(oid, str) or oid.lower() != sha:
        return None

    author = node.get("author") or {}
    committer = node.get("committer") or {}
    if not isinstance(author, dict) or not isinstance(committer, dict):
        return None

    author_login = (author.get("user") or {}).get("login")
    committer_login = (committer.get("user") or {}).get("login")

    parents = node.get("parents")
    if isinstance(parents, dict):
        parent_count = int(parents.get("totalCount") or 0)
    elif isinstance(parents, list):
        parent_count = len(parents)
    else:
        parent_count = 0

    try:
        additions = int(node.get("additions") or 0)
        deletions = int(node.get("deletions") or 0)
        files_changed = int(node.get("changedFiles") or 0)
    except (TypeError, ValueError):
        return None

    committed_date = _first_date(
        node.get("committedDate"), committer.get("date"), author.get("date")
    ) or now()
    authored_date = _first_date(
        node.get("authoredDate"), author.get("date"), node.get("committedDate")
    ) or committed_date

    return CommitSummary(
        sha=sha,
        message=node.get("message") or "",
        headline=node.get("messageHeadline") or "",
        author_name=author.get("name"),
        author_email=author.get("email"),
        author_login=author_login,
        author_is_bot=detect_bot(author_login, author.get("name"), author.get("email")),
        committer_name=committer.get("name"),
        committer_email=committer.get("email"),
        committer_login=committer_login,
        authored_date=authored_date,
        committed_date=committed_date,
        additions=additions,
        deletions=deletions,
        total_changes=additions + deletions,
        files_changed=files_changed,
        parent_count=parent_count,
    )


class CommitFetchService:
    """Service fetching commit metadata in sequential, retried batches."""

    def __init__(
        self,
        commit_source: CommitSourceRepository,
        config: FetchConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize CommitFetchService.

        Args:
            commit_source: Repository implementation for commit queries
            config: Batch and retry settings
            sleep: Awaitable sleep used for retry backoff
        """
        self._commit_source = commit_source
        self._config = config or FetchConfig()
        self._sleep = sleep

    @property
    def batch_size(self) -> int:
        return max(1, min(self._config.batch_size, self._config.max_batch_size))

    async def fetch(
        self, repository: RepositoryCoordinates, shas: list[str]
    ) -> CommitFetchResult:
        """
        Resolve validated SHAs into commit summaries.

        Args:
            repository: Repository to query
            shas: Validated, deduplicated SHAs

        Returns:
            CommitFetchResult with commits in fetch order and per-SHA skips

        Raises:
            RetryExhaustedError: If a batch kept failing transiently
            InvalidCredentialError, RepositoryNotFoundError,
            CommitSourceProtocolError: On fatal batch failures, never retried
        """
        audit = AuditLog(logger)
        batch_size = self.batch_size
        retry_config = RetryConfig(
            retries=self._config.retries,
            initial_delay=self._config.retry_initial_delay,
            max_delay=self._config.retry_max_delay,
        )

        commits: list[CommitSummary] = []
        skipped: list[SkippedCommit] = []
        batches = 0
        retries = 0

        audit.info(
            "fetch_started",
            owner=repository.owner,
            repo=repository.name,
            total_commits=len(shas),
            batch_size=batch_size,
        )

        for start in range(0, len(shas), batch_size):
            batch = tuple(shas[start : start + batch_size])
            batches += 1
            audit.info("fetch_batch_started", batch_start=start, batch_size=len(batch))

            def on_retry(attempt: int, retries_left: int, error: Exception) -> None:
                nonlocal retries
                retries += 1
                audit.warn(
                    "fetch_batch_retry",
                    attempt=attempt,
                    retries_left=retries_left,
                    message=str(error),
                )

            node_batch = await retry_async(
                lambda: self._commit_source.query_commit_batch(repository, batch),
                retry_config,
                retry_on=(TransientCommitSourceError,),
                on_retry=on_retry,
                sleep=self._sleep,
            )

            for sha, node in zip(batch, node_batch.nodes):
                if node is None:
                    skipped.append(
                        SkippedCommit(sha=sha, reasons=(SkipReason.COMMIT_NOT_FOUND.value,))
                    )
                    audit.warn("commit_skipped_missing", sha=sha)
                    continue

                typename = node.get("__typename")
                if typename != "Commit":
                    skipped.append(
                        SkippedCommit(
                            sha=sha,
                            reasons=(SkipReason.NOT_A_COMMIT.value,),
                            message=node.get("messageHeadline"),
                        )
                    )
                    audit.warn("commit_skipped_not_commit", sha=sha, typename=typename)
                    continue

                summary = map_commit_node(sha, node)
                if summary is None:
                    skipped.append(
                        SkippedCommit(sha=sha, reasons=(SkipReason.COMMIT_PARSING_FAILED.value,))
                    )
                    audit.warn("commit_skipped_mapping_failed", sha=sha)
                    continue

                commits.append(summary)

            audit.info(
                "fetch_batch_completed",
                batch_start=start,
                batch_size=len(batch),
                commits_fetched=len(commits),
                skipped_commits=len(skipped),
            )

        metrics = CommitFetchMetrics(
            requested=len(shas),
            fetched=len(commits),
            skipped=len(skipped),
            batches=batches,
            retries=retries,
        )
        audit.info("fetch_completed", fetched=metrics.fetched, skipped=metrics.skipped)

        return CommitFetchResult(
            commits=tuple(commits),
            skipped=tuple(skipped),
            metrics=metrics,
            logs=audit.entries,
        )
