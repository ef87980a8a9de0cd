"""
Pipeline orchestrator.

Runs the changelog pipeline for one job as a state machine:

  pending → processing → completed
                       → failed

Stages run strictly in order: validation, commit_fetch, triage,
detail_fetch, impact_analysis, category_summarization, assembly, persist.
Each stage is timed and appends exactly one entry to the job log. Stages
themselves are pure; only the orchestrator touches the job store.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from changelog_ticker.config import PipelineConfig
from changelog_ticker.errors import (
    ChangelogTickerError,
    ConfigurationError,
    InvalidJobTransitionError,
    NoValidCommitsError,
)
from changelog_ticker.git.domain.entities import CommitWithDetail
from changelog_ticker.git.domain.value_objects import RepositoryCoordinates
from changelog_ticker.git.repositories.implementations import GitHubCommitSourceRepository
from changelog_ticker.git.repositories.interfaces import CommitSourceRepository
from changelog_ticker.git.services.commit_fetch_service import (
    CommitFetchService,
    extract_commit_shas,
)
from changelog_ticker.git.services.detail_fetch_service import CommitDetailFetchService
from changelog_ticker.git.services.triage_service import CommitTriageService
from changelog_ticker.jobs.domain.entities import (
    Job,
    JobLogEntry,
    JobRequest,
    JobStatus,
    LogLevel,
)
from changelog_ticker.jobs.repositories.interfaces import JobStoreRepository
from changelog_ticker.summarization.domain.value_objects import (
    ChangelogDocument,
    ChangelogMetadata,
)
from changelog_ticker.summarization.repositories.interfaces import TextGenerationRepository
from changelog_ticker.summarization.services.assembly_service import ChangelogAssemblyService
from changelog_ticker.summarization.services.category_summarization_service import (
    CategorySummarizationService,
)
from changelog_ticker.summarization.services.generation_guard import GenerationCircuitBreaker
from changelog_ticker.summarization.services.impact_analysis_service import (
    ImpactAnalysisService,
)
from changelog_ticker.utils.audit import AuditLogEntry, utc_now_iso
from changelog_ticker.utils.logging import step_timer
from changelog_ticker.utils.pacing import RequestPacer
from changelog_ticker.utils.serialization import to_jsonable

logger = logging.getLogger(__name__)

AUDIT_TAIL_SIZE = 20


def error_message(error: BaseException) -> str:
    """Human-readable message recorded on a failed job."""
    if isinstance(error, ChangelogTickerError):
        return error.message
    return str(error) or type(error).__name__


def collect_contributors(commits: tuple[CommitWithDetail, ...]) -> tuple[str, ...]:
    """Unique author logins, falling back to detail author names, in commit order."""
    contributors: list[str] = []
    for commit in commits:
        name = commit.summary.author_login or commit.detail.author_name
        if name and name not in contributors:
            contributors.append(name)
    return tuple(contributors)


@dataclass
class StageRun:
    """Mutable record filled in by a stage while it runs."""

    name: str
    message: str = ""
    level: LogLevel = LogLevel.INFO
    metrics: dict[str, Any] = field(default_factory=dict)
    audit: tuple[AuditLogEntry, ...] = ()


class PipelineOrchestrator:
    """
    Sequence the pipeline stages for one job and record the outcome.

    A fatal error in any stage fails the job with its message; the
    orchestrator never retries a stage.
    """

    def __init__(
        self,
        job_store: JobStoreRepository,
        text_generator: TextGenerationRepository,
        commit_source_factory: Callable[
            [str], CommitSourceRepository
        ] = GitHubCommitSourceRepository,
        config: PipelineConfig | None = None,
        github_token: str | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        pacer: RequestPacer | None = None,
        assembly_service: ChangelogAssemblyService | None = None,
    ) -> None:
        """
        Initialize PipelineOrchestrator.

        Args:
            job_store: Store holding the jobs
            text_generator: Text generation capability shared by all stages
            commit_source_factory: Builds a commit source for an access token
            config: Pipeline configuration
            github_token: Token used when the job request carries none
            sleep: Awaitable sleep used for fetch retry backoff
            pacer: Pacer for detail fetch batches. Built from the config when omitted
            assembly_service: Assembly service override, mainly to inject a clock
        """
        self._job_store = job_store
        self._text_generator = text_generator
        self._commit_source_factory = commit_source_factory
        self._config = config or PipelineConfig()
        self._github_token = github_token
        self._sleep = sleep
        self._pacer = pacer
        self._assembly_service = assembly_service
        self._triage_service = CommitTriageService()

    async def process_job(self, job_id: str) -> Job:
        """
        Run the pipeline for a job to completion.

        Args:
            job_id: Id of a pending (or stale processing) job

        Returns:
            The job in its terminal state, completed or failed

        Raises:
            JobNotFoundError: If the job does not exist
            InvalidJobTransitionError: If the job is already completed or failed
        """
        job = self._job_store.get_job(job_id)
        if job.status.is_terminal:
            raise InvalidJobTransitionError(job.id, job.status.value, JobStatus.PROCESSING.value)

        job = self._job_store.update_status(job_id, JobStatus.PROCESSING)
        logger.info("[%s] Pipeline starting for %s/%s", job_id, job.request.owner, job.request.repo)

        try:
            output_data, document = await self._run(job)
            with self._stage(job_id, "persist") as stage:
                self._job_store.save_result(job_id, output_data, document)
                stage.message = "Changelog saved"
                stage.metrics = {"markdown_length": len(document.markdown)}
        except Exception as e:
            logger.error("[%s] Pipeline failed: %s", job_id, error_message(e))
            return self._job_store.update_status(job_id, JobStatus.FAILED, error_message(e))

        logger.info("[%s] Pipeline complete", job_id)
        return self._job_store.update_status(job_id, JobStatus.COMPLETED)

    async def _run(self, job: Job) -> tuple[dict[str, Any], ChangelogDocument]:
        """Run stages up to assembly. Returns the output data and the document."""
        request = job.request
        config = self._config

        with self._stage(job.id, "validation") as stage:
            repository = RepositoryCoordinates(owner=request.owner, name=request.repo)
            valid, invalid = extract_commit_shas(request.selected_commits)
            stage.metrics = {"valid": len(valid), "invalid": len(invalid)}
            if invalid:
                stage.level = LogLevel.WARN
                stage.message = f"Dropped {len(invalid)} invalid commit identifiers"
            if not valid:
                raise NoValidCommitsError(invalid)

            token = request.token or self._github_token
            if not token:
                raise ConfigurationError(
                    "No GitHub token available for this job",
                    suggestion="Set GITHUB_TOKEN or pass a token with the job request.",
                )
            commit_source = self._commit_source_factory(token)

        with self._stage(job.id, "commit_fetch") as stage:
            fetch_service = CommitFetchService(commit_source, config.fetch, sleep=self._sleep)
            fetched = await fetch_service.fetch(repository, valid)
            stage.metrics = to_jsonable(fetched.metrics)
            stage.audit = fetched.logs
            stage.message = (
                f"Fetched {fetched.metrics.fetched} of {fetched.metrics.requested} commits"
            )

        with self._stage(job.id, "triage") as stage:
            triage = self._triage_service.triage(fetched.commits)
            stage.metrics = to_jsonable(triage.metrics)
            stage.message = (
                f"Retained {triage.metrics.total_retained} of {triage.metrics.total_input} commits"
            )

        assembly_service = self._assembly_service or ChangelogAssemblyService(
            self._guard("assembly")
        )
        skipped = fetched.skipped + triage.skipped
        output: dict[str, Any] = {
            "job": {
                "id": job.id,
                "owner": request.owner,
                "repo": request.repo,
                "version": request.version,
            },
            "stage1": {
                "metrics": {
                    "fetch": to_jsonable(fetched.metrics),
                    "triage": to_jsonable(triage.metrics),
                },
                "commits": to_jsonable(triage.retained),
                "skipped": to_jsonable(skipped),
                "invalid_commits": invalid,
            },
        }

        if not triage.retained:
            metadata = ChangelogMetadata(
                commit_count=0, date_range=request.date_range, version=request.version
            )
            document = assembly_service.build_empty_document(metadata)
            output["totals"] = self._totals(request, 0, 0, len(skipped))
            output["generated_at"] = utc_now_iso()
            return output, document

        with self._stage(job.id, "detail_fetch") as stage:
            detail_service = CommitDetailFetchService(
                commit_source,
                config.detail_fetch,
                pacer=self._pacer or RequestPacer(config.detail_fetch.pacing_interval_seconds),
            )
            details = await detail_service.fetch_details(repository, triage.retained)
            stage.metrics = to_jsonable(details.metrics)
            stage.audit = details.logs
            if details.failures:
                stage.level = LogLevel.WARN
                stage.message = f"{len(details.failures)} commits unavailable"

        with self._stage(job.id, "impact_analysis") as stage:
            analysis_service = ImpactAnalysisService(
                self._guard("impact_analysis"), config.analysis
            )
            analysis = await analysis_service.analyze(details.commits)
            stage.metrics = {"strategy": analysis.strategy.value, **to_jsonable(analysis.metrics)}
            stage.audit = analysis.logs

        with self._stage(job.id, "category_summarization") as stage:
            summarization_service = CategorySummarizationService(
                self._guard("category_summarization"), config.summarization
            )
            summary = await summarization_service.summarize(analysis.commits)
            stage.metrics = to_jsonable(summary.metrics)
            stage.audit = summary.logs

        with self._stage(job.id, "assembly") as stage:
            metadata = ChangelogMetadata(
                commit_count=len(details.commits),
                contributors=collect_contributors(details.commits),
                date_range=request.date_range,
                version=request.version,
            )
            assembled = await assembly_service.assemble(summary, metadata)
            stage.metrics = to_jsonable(assembled.metrics)
            stage.audit = assembled.logs

        output["stage1"]["detail_failures"] = to_jsonable(details.failures)
        output["stage2"] = {
            "strategy": analysis.strategy.value,
            "metrics": to_jsonable(analysis.metrics),
            "commits": to_jsonable(analysis.commits),
        }
        output["stage3"] = {
            "categories": to_jsonable(summary.categories),
            "executive_summary": list(summary.executive_summary),
            "metrics": to_jsonable(summary.metrics),
        }
        output["stage4"] = {
            "markdown": assembled.document.markdown,
            "title": to_jsonable(assembled.document.title),
            "metrics": to_jsonable(assembled.metrics),
        }
        output["totals"] = self._totals(
            request, len(details.commits), len(triage.retained), len(skipped)
        )
        output["generated_at"] = utc_now_iso()
        return output, assembled.document

    def _guard(self, stage: str) -> GenerationCircuitBreaker:
        return GenerationCircuitBreaker(
            self._text_generator, stage, self._config.max_consecutive_llm_failures
        )

    @staticmethod
    def _totals(request: JobRequest, processed: int, retained: int, skipped: int) -> dict[str, int]:
        return {
            "total_selected": len(request.selected_commits),
            "total_after_stage1": retained,
            "total_retained": retained,
            "total_skipped": skipped,
            "total_commits_processed": processed,
        }

    @contextmanager
    def _stage(self, job_id: str, name: str) -> Iterator[StageRun]:
        """Time a stage and append its log entry, completed or failed."""
        stage = StageRun(name=name)
        with step_timer(name) as timer:
            try:
                yield stage
            except Exception as e:
                timer.stop()
                self._job_store.append_log(
                    job_id,
                    JobLogEntry(
                        timestamp=utc_now_iso(),
                        stage=name,
                        event="failed",
                        level=LogLevel.ERROR,
                        message=error_message(e),
                        duration_ms=timer.duration_ms,
                        metrics=stage.metrics,
                        details=self._details(stage, e),
                    ),
                )
                raise
        self._job_store.append_log(
            job_id,
            JobLogEntry(
                timestamp=utc_now_iso(),
                stage=name,
                event="completed",
                level=stage.level,
                message=stage.message,
                duration_ms=timer.duration_ms,
                metrics=stage.metrics,
                details=self._details(stage, None),
            ),
        )

    @staticmethod
    def _details(stage: StageRun, error: BaseException | None) -> dict[str, Any]:
        details: dict[str, Any] = {}
        if stage.audit:
            details["audit"] = to_jsonable(stage.audit[-AUDIT_TAIL_SIZE:])
        if isinstance(error, ChangelogTickerError):
            details["error"] = to_jsonable(error.to_dict())
        elif error is not None:
            details["error"] = {"error_code": type(error).__name__, "message": str(error)}
        return details
