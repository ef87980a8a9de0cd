"""Concrete job stores: in memory and one JSON file per job."""

import json
import os
import tempfile
import threading
import uuid
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any

from changelog_ticker.errors import InvalidJobTransitionError, JobNotFoundError
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
    ChangelogTitle,
    DateRange,
)
from changelog_ticker.utils.audit import utc_now_iso
from changelog_ticker.utils.serialization import to_jsonable


def _new_job_id() -> str:
    return uuid.uuid4().hex[:12]


def _transition(job: Job, status: JobStatus, error_message: str | None) -> Job:
    if not job.can_transition_to(status):
        raise InvalidJobTransitionError(job.id, job.status.value, status.value)
    return replace(
        job,
        status=status,
        error_message=error_message if status is JobStatus.FAILED else job.error_message,
        updated_at=utc_now_iso(),
    )


class InMemoryJobStore(JobStoreRepository):
    """Job store kept in a dict, for tests and single-process runs."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def create_job(self, request: JobRequest, job_id: str | None = None) -> Job:
        now = utc_now_iso()
        job = Job(id=job_id or _new_job_id(), request=request, created_at=now, updated_at=now)
        with self._lock:
            self._jobs[job.id] = job
        return job

    def get_job(self, job_id: str) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def update_status(
        self, job_id: str, status: JobStatus, error_message: str | None = None
    ) -> Job:
        with self._lock:
            job = self._require(job_id)
            updated = _transition(job, status, error_message)
            self._jobs[job_id] = updated
        return updated

    def append_log(self, job_id: str, entry: JobLogEntry) -> Job:
        with self._lock:
            job = self._require(job_id)
            updated = replace(job, logs=job.logs + (entry,), updated_at=utc_now_iso())
            self._jobs[job_id] = updated
        return updated

    def save_result(
        self, job_id: str, output_data: dict[str, Any], artifact: ChangelogDocument
    ) -> Job:
        with self._lock:
            job = self._require(job_id)
            updated = replace(
                job, output_data=output_data, artifact=artifact, updated_at=utc_now_iso()
            )
            self._jobs[job_id] = updated
        return updated

    def _require(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job


def job_to_dict(job: Job, include_token: bool = False) -> dict[str, Any]:
    """Serialize a job. The access token is left out unless asked for."""
    data = to_jsonable(job)
    if not include_token:
        data["request"]["token"] = None
    return data


def _parse_date(value: Any) -> date | None:
    if isinstance(value, str) and value:
        return date.fromisoformat(value)
    return None


def job_from_dict(data: dict[str, Any]) -> Job:
    """Rebuild a job written by :func:`job_to_dict`."""
    raw_request = data["request"]
    raw_range = raw_request.get("date_range") or {}
    request = JobRequest(
        owner=raw_request["owner"],
        repo=raw_request["repo"],
        selected_commits=tuple(raw_request.get("selected_commits") or ()),
        token=raw_request.get("token"),
        date_range=DateRange(
            start=_parse_date(raw_range.get("start")),
            end=_parse_date(raw_range.get("end")),
        ),
        version=raw_request.get("version"),
    )

    logs = tuple(
        JobLogEntry(
            timestamp=entry["timestamp"],
            stage=entry["stage"],
            event=entry["event"],
            level=LogLevel(entry.get("level", LogLevel.INFO.value)),
            message=entry.get("message", ""),
            duration_ms=entry.get("duration_ms"),
            metrics=entry.get("metrics") or {},
            details=entry.get("details") or {},
        )
        for entry in data.get("logs") or []
    )

    artifact = None
    raw_artifact = data.get("artifact")
    if raw_artifact:
        raw_title = raw_artifact["title"]
        artifact = ChangelogDocument(
            markdown=raw_artifact["markdown"],
            title=ChangelogTitle(
                title=raw_title["title"],
                date=raw_title["date"],
                version_number=raw_title.get("version_number"),
            ),
            version=raw_artifact.get("version"),
            release_date=raw_artifact.get("release_date"),
        )

    return Job(
        id=data["id"],
        request=request,
        status=JobStatus(data["status"]),
        logs=logs,
        output_data=data.get("output_data"),
        artifact=artifact,
        error_message=data.get("error_message"),
        created_at=data.get("created_at", ""),
        updated_at=data.get("updated_at", ""),
    )


class JsonFileJobStore(JobStoreRepository):
    """
    Job store writing one JSON file per job.

    Each write goes to a temporary file that atomically replaces the job
    file, so a reader never sees a half-written job. Access tokens are never
    written to disk.
    """

    def __init__(self, directory: Path) -> None:
        """
        Initialize the file store.

        Args:
            directory: Directory holding the job files. Created if missing
        """
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def path_for(self, job_id: str) -> Path:
        return self._directory / f"{job_id}.json"

    def create_job(self, request: JobRequest, job_id: str | None = None) -> Job:
        now = utc_now_iso()
        job = Job(id=job_id or _new_job_id(), request=request, created_at=now, updated_at=now)
        with self._lock:
            self._write(job)
        return job

    def get_job(self, job_id: str) -> Job:
        with self._lock:
            return self._read(job_id)

    def update_status(
        self, job_id: str, status: JobStatus, error_message: str | None = None
    ) -> Job:
        with self._lock:
            updated = _transition(self._read(job_id), status, error_message)
            self._write(updated)
        return updated

    def append_log(self, job_id: str, entry: JobLogEntry) -> Job:
        with self._lock:
            job = self._read(job_id)
            updated = replace(job, logs=job.logs + (entry,), updated_at=utc_now_iso())
            self._write(updated)
        return updated

    def save_result(
        self, job_id: str, output_data: dict[str, Any], artifact: ChangelogDocument
    ) -> Job:
        with self._lock:
            updated = replace(
                self._read(job_id),
                output_data=output_data,
                artifact=artifact,
                updated_at=utc_now_iso(),
            )
            self._write(updated)
        return updated

    def _read(self, job_id: str) -> Job:
        path = self.path_for(job_id)
        if not path.exists():
            raise JobNotFoundError(job_id)
        with open(path, encoding="utf-8") as f:
            return job_from_dict(json.load(f))

    def _write(self, job: Job) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self._directory, prefix=f".{job.id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(job_to_dict(job), f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path_for(job.id))
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
