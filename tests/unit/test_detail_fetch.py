"""Unit tests for the paced commit detail fetch."""

import pytest

from changelog_ticker.config import DetailFetchConfig
from changelog_ticker.git.services.detail_fetch_service import CommitDetailFetchService
from changelog_ticker.utils.pacing import RequestPacer

from factories import REPO, FakeCommitSource, make_filtered, make_sha


class ManualClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def make_service(source, clock, batch_size=5, interval=1.0):
    pacer = RequestPacer(interval, clock=clock, sleep=clock.sleep)
    return CommitDetailFetchService(source, DetailFetchConfig(batch_size=batch_size), pacer=pacer)


class TestCommitDetailFetchService:
    @pytest.mark.asyncio
    async def test_pairs_details_in_triage_order(self):
        commits = tuple(make_filtered(make_sha(i)) for i in range(1, 13))
        source = FakeCommitSource()
        clock = ManualClock()

        result = await make_service(source, clock).fetch_details(REPO, commits)

        assert [pair.summary.sha for pair in result.commits] == [c.sha for c in commits]
        assert all(pair.detail.sha == pair.summary.sha for pair in result.commits)
        assert sorted(source.detail_calls) == sorted(c.sha for c in commits)
        assert result.metrics.batches == 3
        assert result.metrics.fetched == 12

    @pytest.mark.asyncio
    async def test_batches_are_paced(self):
        commits = tuple(make_filtered(make_sha(i)) for i in range(1, 12))
        clock = ManualClock()

        result = await make_service(FakeCommitSource(), clock).fetch_details(REPO, commits)

        # Three batches: the first goes out at once, the next two wait a full interval.
        assert clock.sleeps == [1.0, 1.0]
        assert result.metrics.pacing_wait_seconds == 2.0

    @pytest.mark.asyncio
    async def test_unavailable_commits_are_dropped(self):
        commits = tuple(make_filtered(make_sha(i)) for i in range(1, 4))
        source = FakeCommitSource(missing_details={make_sha(2)})

        result = await make_service(source, ManualClock()).fetch_details(REPO, commits)

        assert [pair.summary.sha for pair in result.commits] == [make_sha(1), make_sha(3)]
        assert [failure.sha for failure in result.failures] == [make_sha(2)]
        assert "404" in result.failures[0].message
        assert result.metrics.failed == 1
        warnings = [entry for entry in result.logs if entry.message == "commit_detail_unavailable"]
        assert warnings[0].details["sha"] == make_sha(2)

    @pytest.mark.asyncio
    async def test_empty_input(self):
        clock = ManualClock()
        result = await make_service(FakeCommitSource(), clock).fetch_details(REPO, ())
        assert result.commits == ()
        assert result.metrics.batches == 0
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_unexpected_errors_only_drop_the_commit(self):
        class ExplodingSource(FakeCommitSource):
            async def get_commit_detail(self, repository, sha):
                if sha == make_sha(1):
                    raise KeyError("files")
                return await super().get_commit_detail(repository, sha)

        commits = tuple(make_filtered(make_sha(i)) for i in range(1, 3))

        result = await make_service(ExplodingSource(), ManualClock()).fetch_details(REPO, commits)

        assert [pair.summary.sha for pair in result.commits] == [make_sha(2)]
        assert result.failures[0].message.startswith("KeyError")
        warnings = [entry for entry in result.logs if entry.message == "commit_detail_unavailable"]
        assert warnings[0].details["message"] == result.failures[0].message
