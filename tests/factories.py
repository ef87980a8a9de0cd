"""Builders and fakes shared by the changelog-ticker test suite."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from changelog_ticker.errors import CommitDetailUnavailableError
from changelog_ticker.git.domain.entities import (
    CommitDetail,
    CommitSummary,
    CommitWithDetail,
    FilteredCommitSummary,
)
from changelog_ticker.git.domain.value_objects import (
    CommitCategory,
    CommitNodeBatch,
    FileChange,
    FileChangeType,
    RepositoryCoordinates,
)
from changelog_ticker.git.repositories.interfaces import CommitSourceRepository
from changelog_ticker.summarization.repositories.interfaces import TextGenerationRepository

BASE_DATE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
REPO = RepositoryCoordinates(owner="acme", name="widgets")


def make_sha(index: int) -> str:
    return f"{index:040x}"


def make_node(
    sha: str,
    headline: str = "feat: add export button",
    message: str | None = None,
    login: str | None = "alice",
    name: str = "Alice",
    email: str = "alice@example.com",
    parents: int = 1,
    committed_date: str = "2024-05-01T12:00:00Z",
    additions: int = 10,
    deletions: int = 2,
    changed_files: int = 1,
    typename: str = "Commit",
) -> dict[str, Any]:
    """GraphQL commit node as returned by the batched query."""
    user = {"__typename": "User", "login": login} if login else None
    return {
        "__typename": typename,
        "oid": sha,
        "message": message if message is not None else headline,
        "messageHeadline": headline,
        "committedDate": committed_date,
        "authoredDate": committed_date,
        "additions": additions,
        "deletions": deletions,
        "changedFiles": changed_files,
        "author": {"name": name, "email": email, "date": committed_date, "user": user},
        "committer": {"name": name, "email": email, "date": committed_date, "user": user},
        "parents": {"totalCount": parents},
    }


def make_summary(
    sha: str,
    headline: str = "feat: add export button",
    message: str | None = None,
    parent_count: int = 1,
    author_login: str | None = "alice",
    author_is_bot: bool = False,
    committed_date: datetime = BASE_DATE,
) -> CommitSummary:
    return CommitSummary(
        sha=sha,
        message=message if message is not None else headline,
        headline=headline,
        author_name="Alice",
        author_email="alice@example.com",
        author_login=author_login,
        author_is_bot=author_is_bot,
        committer_name="Alice",
        committer_email="alice@example.com",
        committer_login=author_login,
        authored_date=committed_date,
        committed_date=committed_date,
        additions=10,
        deletions=2,
        total_changes=12,
        files_changed=1,
        parent_count=parent_count,
    )


def make_filtered(
    sha: str,
    headline: str = "feat: add export button",
    category: CommitCategory = CommitCategory.FEATURES,
    score: int = 8,
    committed_date: datetime = BASE_DATE,
    author_login: str | None = "alice",
) -> FilteredCommitSummary:
    return FilteredCommitSummary.from_summary(
        make_summary(sha, headline, committed_date=committed_date, author_login=author_login),
        category,
        score,
    )


def make_file(
    filename: str, patch: str | None = "+line", status: FileChangeType = FileChangeType.MODIFIED
) -> FileChange:
    return FileChange(filename=filename, status=status, additions=1, patch=patch)


def make_detail(
    sha: str, files: tuple[FileChange, ...] = (), message: str = "feat: add export button"
) -> CommitDetail:
    return CommitDetail(
        sha=sha,
        message=message,
        author_name="Alice",
        author_email="alice@example.com",
        authored_date=BASE_DATE,
        files=files,
    )


def make_commit_with_detail(
    index: int,
    score: int = 8,
    category: CommitCategory = CommitCategory.FEATURES,
    headline: str | None = None,
    files: tuple[FileChange, ...] | None = None,
) -> CommitWithDetail:
    sha = make_sha(index)
    title = headline or f"feat: change number {index}"
    return CommitWithDetail(
        summary=make_filtered(
            sha,
            title,
            category=category,
            score=score,
            committed_date=BASE_DATE + timedelta(minutes=index),
        ),
        detail=make_detail(
            sha,
            files if files is not None else (make_file(f"src/module_{index}.py"),),
            message=title,
        ),
    )


class FakeCommitSource(CommitSourceRepository):
    """
    Scripted commit source.

    ``batch_errors`` are raised, in order, by the first batch calls before
    any nodes are served.
    """

    def __init__(
        self,
        nodes: dict[str, dict[str, Any] | None] | None = None,
        details: dict[str, CommitDetail] | None = None,
        batch_errors: list[Exception] | None = None,
        missing_details: set[str] | None = None,
    ) -> None:
        self.nodes = nodes or {}
        self.details = details or {}
        self.batch_errors = list(batch_errors or [])
        self.missing_details = missing_details or set()
        self.batch_calls: list[tuple[str, ...]] = []
        self.detail_calls: list[str] = []

    async def query_commit_batch(
        self, repository: RepositoryCoordinates, shas: tuple[str, ...]
    ) -> CommitNodeBatch:
        self.batch_calls.append(tuple(shas))
        if self.batch_errors:
            raise self.batch_errors.pop(0)
        return CommitNodeBatch(shas=tuple(shas), nodes=tuple(self.nodes.get(sha) for sha in shas))

    async def get_commit_detail(self, repository: RepositoryCoordinates, sha: str) -> CommitDetail:
        self.detail_calls.append(sha)
        if sha in self.missing_details:
            raise CommitDetailUnavailableError(sha, "GitHub returned HTTP 404")
        return self.details.get(sha) or make_detail(sha, (make_file("src/app.py"),))


class FakeTextGenerator(TextGenerationRepository):
    """
    Scripted text generator.

    Replies come from ``responder`` when given, otherwise from ``responses``
    in order, then ``default``.
    """

    def __init__(
        self,
        responses: list[str | None] | None = None,
        default: str | None = None,
        responder: Callable[[str, str], str | None] | None = None,
    ) -> None:
        self.responses = list(responses or [])
        self.default = default
        self.responder = responder
        self.calls: list[tuple[str, str]] = []

    async def generate(self, system_prompt: str, user_prompt: str) -> str | None:
        self.calls.append((system_prompt, user_prompt))
        if self.responder is not None:
            return self.responder(system_prompt, user_prompt)
        if self.responses:
            return self.responses.pop(0)
        return self.default


async def no_sleep(seconds: float) -> None:
    return None
