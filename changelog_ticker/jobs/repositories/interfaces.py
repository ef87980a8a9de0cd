"""Repository interfaces for job persistence."""

from abc import ABC, abstractmethod
from typing import Any

from changelog_ticker.jobs.domain.entities import Job, JobLogEntry, JobRequest, JobStatus
from changelog_ticker.summarization.domain.value_objects import ChangelogDocument


class JobStoreRepository(ABC):
    """
    Interface for storing jobs, keyed by job id.

    Implementations must be strongly consistent per job: a read after a
    write always sees that write.
    """

    @abstractmethod
    def create_job(self, request: JobRequest, job_id: str | None = None) -> Job:
        """
        Create a pending job.

        Args:
            request: What the caller asked for
            job_id: Optional id. A random id is generated when omitted

        Returns:
            The new job
        """
        ...

    @abstractmethod
    def get_job(self, job_id: str) -> Job:
        """
        Read a job.

        Raises:
            JobNotFoundError: If no job has this id
        """
        ...

    @abstractmethod
    def update_status(
        self, job_id: str, status: JobStatus, error_message: str | None = None
    ) -> Job:
        """
        Move a job to a new status.

        Raises:
            JobNotFoundError: If no job has this id
            InvalidJobTransitionError: If the transition is not allowed
        """
        ...

    @abstractmethod
    def append_log(self, job_id: str, entry: JobLogEntry) -> Job:
        """Append one entry to the job's log. Entries are never rewritten."""
        ...

    @abstractmethod
    def save_result(
        self, job_id: str, output_data: dict[str, Any], artifact: ChangelogDocument
    ) -> Job:
        """Store the combined stage outputs and the final artifact in one write."""
        ...
