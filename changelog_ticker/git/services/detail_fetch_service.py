"""Service fetching full file-change detail for triaged commits."""

import asyncio
import logging

from changelog_ticker.config import DetailFetchConfig
from changelog_ticker.errors import CommitDetailUnavailableError
from changelog_ticker.git.domain.entities import (
    CommitDetail,
    CommitWithDetail,
    FilteredCommitSummary,
)
from changelog_ticker.git.domain.results import (
    DetailFetchFailure,
    DetailFetchMetrics,
    DetailFetchResult,
)
from changelog_ticker.git.domain.value_objects import RepositoryCoordinates
from changelog_ticker.git.repositories.interfaces import CommitSourceRepository
from changelog_ticker.utils.audit import AuditLog
from changelog_ticker.utils.pacing import RequestPacer

logger = logging.getLogger(__name__)


class CommitDetailFetchService:
    """Service fetching commit details in small concurrent, paced batches."""

    def __init__(
        self,
        commit_source: CommitSourceRepository,
        config: DetailFetchConfig | None = None,
        pacer: RequestPacer | None = None,
    ) -> None:
        """
        Initialize CommitDetailFetchService.

        Args:
            commit_source: Repository implementation for commit queries
            config: Batch width and pacing settings
            pacer: Pacer gating each batch. Built from the config when omitted
        """
        self._commit_source = commit_source
        self._config = config or DetailFetchConfig()
        self._pacer = pacer or RequestPacer(self._config.pacing_interval_seconds)

    async def fetch_details(
        self,
        repository: RepositoryCoordinates,
        commits: tuple[FilteredCommitSummary, ...],
    ) -> DetailFetchResult:
        """
        Fetch the detail of every retained commit.

        A commit whose detail cannot be fetched is logged as unavailable and
        dropped; it never fails the run.

        Args:
            repository: Repository to query
            commits: Retained commits in triage order

        Returns:
            DetailFetchResult with pairs in triage order
        """
        audit = AuditLog(logger)
        batch_size = max(1, self._config.batch_size)
        detailed: list[CommitWithDetail] = []
        failures: list[DetailFetchFailure] = []
        batches = 0
        waited = 0.0

        for start in range(0, len(commits), batch_size):
            batch = commits[start : start + batch_size]
            batches += 1
            waited += await self._pacer.acquire()

            outcomes = await asyncio.gather(
                *(self._fetch_one(repository, commit.sha) for commit in batch)
            )

            for commit, outcome in zip(batch, outcomes):
                if isinstance(outcome, CommitDetail):
                    detailed.append(CommitWithDetail(summary=commit, detail=outcome))
                    continue
                failures.append(DetailFetchFailure(sha=commit.sha, message=outcome))
                audit.warn("commit_detail_unavailable", sha=commit.sha, message=outcome)

            audit.info(
                "detail_batch_completed",
                batch_start=start,
                batch_size=len(batch),
                fetched=len(detailed),
                failed=len(failures),
            )

        metrics = DetailFetchMetrics(
            requested=len(commits),
            fetched=len(detailed),
            failed=len(failures),
            batches=batches,
            pacing_wait_seconds=round(waited, 3),
        )
        return DetailFetchResult(
            commits=tuple(detailed),
            failures=tuple(failures),
            metrics=metrics,
            logs=audit.entries,
        )

    async def _fetch_one(self, repository: RepositoryCoordinates, sha: str) -> CommitDetail | str:
        """Fetch one detail, returning the error message instead of raising."""
        try:
            return await self._commit_source.get_commit_detail(repository, sha)
        except CommitDetailUnavailableError as e:
            return e.message
        except Exception as e:
            logger.exception("Unexpected error fetching detail for commit %s", sha)
            return f"{type(e).__name__}: {e}"
