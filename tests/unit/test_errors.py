"""Unit tests for the structured error catalog."""

from changelog_ticker.errors import (
    ChangelogTickerError,
    CommitDetailUnavailableError,
    CommitSourceProtocolError,
    ConfigurationError,
    InvalidCredentialError,
    InvalidJobTransitionError,
    JobNotFoundError,
    NoValidCommitsError,
    RepositoryNotFoundError,
    RetryExhaustedError,
    TextGenerationUnavailableError,
    TransientCommitSourceError,
)


class TestErrorCatalog:
    def test_base_error(self):
        e = ChangelogTickerError(code="TEST", message="test msg", suggestion="try this")
        d = e.to_dict()
        assert d["error_code"] == "TEST"
        assert d["message"] == "test msg"
        assert d["suggestion"] == "try this"
        assert "detail" not in d
        assert str(e) == "test msg"

    def test_no_valid_commits_keeps_invalid_entries(self):
        e = NoValidCommitsError(["abc", "not-a-sha"])
        assert e.code == "NO_VALID_COMMITS"
        assert e.message == "No valid commit SHAs provided for processing"
        assert e.to_dict()["detail"] == ["abc", "not-a-sha"]

    def test_configuration_error_has_default_suggestion(self):
        e = ConfigurationError("LLM_PROVIDER is invalid")
        assert e.code == "CONFIGURATION_INVALID"
        assert e.suggestion

    def test_invalid_credential(self):
        e = InvalidCredentialError(401)
        assert e.code == "INVALID_CREDENTIAL"
        assert "401" in e.message

    def test_repository_not_found(self):
        e = RepositoryNotFoundError("acme/widgets")
        assert e.code == "REPOSITORY_NOT_FOUND"
        assert "acme/widgets" in e.message

    def test_protocol_error_joins_messages(self):
        e = CommitSourceProtocolError(["first", "second"])
        assert e.message == "GitHub GraphQL errors: first | second"
        assert e.detail == ["first", "second"]

    def test_transient_error_keeps_status(self):
        e = TransientCommitSourceError("rate limited", 429)
        assert e.status == 429
        assert e.code == "COMMIT_SOURCE_UNAVAILABLE"

    def test_retry_exhausted_wraps_last_error(self):
        last = TransientCommitSourceError("boom")
        e = RetryExhaustedError(4, last)
        assert e.attempts == 4
        assert e.last_exception is last
        assert "4 attempts" in e.message
        assert "TransientCommitSourceError" in e.message

    def test_commit_detail_unavailable(self):
        e = CommitDetailUnavailableError("a" * 40, "GitHub returned HTTP 404")
        assert e.sha == "a" * 40
        assert "HTTP 404" in e.message

    def test_text_generation_unavailable(self):
        e = TextGenerationUnavailableError("impact_analysis", 3)
        assert e.code == "TEXT_GENERATION_UNAVAILABLE"
        assert "3 times" in e.message
        assert "impact_analysis" in e.message

    def test_job_errors(self):
        assert JobNotFoundError("job-1").code == "JOB_NOT_FOUND"
        e = InvalidJobTransitionError("job-1", "completed", "processing")
        assert e.code == "INVALID_JOB_TRANSITION"
        assert "completed" in e.message and "processing" in e.message

    def test_all_errors_share_the_base(self):
        for error in (
            ConfigurationError("x"),
            NoValidCommitsError([]),
            InvalidCredentialError(403),
            JobNotFoundError("x"),
        ):
            assert isinstance(error, ChangelogTickerError)
            assert error.to_dict()["error_code"] == error.code
