"""
Structured error catalog.

Every error carries a code, a human message and a suggested fix. Fatal
errors propagate to the pipeline orchestrator, which records the message on
the job; nothing else reaches the job's caller.
"""

from __future__ import annotations

from typing import Any


class ChangelogTickerError(Exception):
    """Base error with structured code + suggestion."""

    def __init__(self, code: str, message: str, suggestion: str = "", detail: Any = None):
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "error_code": self.code,
            "message": self.message,
        }
        if self.suggestion:
            d["suggestion"] = self.suggestion
        if self.detail:
            d["detail"] = self.detail
        return d


class ConfigurationError(ChangelogTickerError):
    def __init__(self, message: str, suggestion: str = ""):
        super().__init__(
            code="CONFIGURATION_INVALID",
            message=message,
            suggestion=suggestion or "Check the environment variables or the .env file.",
        )


class NoValidCommitsError(ChangelogTickerError):
    def __init__(self, invalid: list[str]):
        super().__init__(
            code="NO_VALID_COMMITS",
            message="No valid commit SHAs provided for processing",
            suggestion="Select commits by their full 40-character SHA.",
            detail=invalid[:20] if invalid else None,
        )


class InvalidCredentialError(ChangelogTickerError):
    def __init__(self, status: int):
        super().__init__(
            code="INVALID_CREDENTIAL",
            message=f"GitHub rejected the access token (HTTP {status})",
            suggestion="Reconnect the repository to refresh the GitHub token.",
        )


class RepositoryNotFoundError(ChangelogTickerError):
    def __init__(self, full_name: str):
        super().__init__(
            code="REPOSITORY_NOT_FOUND",
            message=f"Repository not found or access denied: {full_name}",
            suggestion="Check the repository name and that the token can read it.",
        )


class CommitSourceProtocolError(ChangelogTickerError):
    def __init__(self, messages: list[str]):
        super().__init__(
            code="COMMIT_SOURCE_PROTOCOL_ERROR",
            message=f"GitHub GraphQL errors: {' | '.join(messages)}",
            suggestion="The batched commit query was rejected; it is not retried.",
            detail=messages,
        )


class TransientCommitSourceError(ChangelogTickerError):
    """Transport failure or rate limit; safe to retry."""

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(
            code="COMMIT_SOURCE_UNAVAILABLE",
            message=message,
            suggestion="GitHub is unreachable or rate limited. Retry later.",
        )


class RetryExhaustedError(ChangelogTickerError):
    def __init__(self, attempts: int, last_exception: Exception):
        self.attempts = attempts
        self.last_exception = last_exception
        super().__init__(
            code="RETRY_EXHAUSTED",
            message=(
                f"Retry exhausted after {attempts} attempts. "
                f"Last error: {type(last_exception).__name__}: {last_exception}"
            ),
            suggestion="GitHub kept failing; re-trigger the job once it recovers.",
        )


class CommitDetailUnavailableError(ChangelogTickerError):
    def __init__(self, sha: str, message: str):
        self.sha = sha
        super().__init__(
            code="COMMIT_DETAIL_UNAVAILABLE",
            message=f"Could not fetch details for commit {sha}: {message}",
        )


class TextGenerationUnavailableError(ChangelogTickerError):
    def __init__(self, stage: str, consecutive_failures: int):
        super().__init__(
            code="TEXT_GENERATION_UNAVAILABLE",
            message=(
                f"Text generation failed {consecutive_failures} times in a row "
                f"during {stage}"
            ),
            suggestion="Check the LLM provider status and credentials, then re-trigger the job.",
        )


class JobNotFoundError(ChangelogTickerError):
    def __init__(self, job_id: str):
        super().__init__(
            code="JOB_NOT_FOUND",
            message=f"Job with ID {job_id} not found",
        )


class InvalidJobTransitionError(ChangelogTickerError):
    def __init__(self, job_id: str, current: str, target: str):
        super().__init__(
            code="INVALID_JOB_TRANSITION",
            message=f"Job {job_id} cannot move from {current} to {target}",
            suggestion="Completed and failed jobs are terminal; create a new job instead.",
        )
