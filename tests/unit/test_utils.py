"""Unit tests for retry, pacing, audit logging and serialization helpers."""

import logging
from datetime import date

import pytest

from changelog_ticker.errors import RetryExhaustedError
from changelog_ticker.git.domain.value_objects import CommitCategory
from changelog_ticker.utils.audit import AuditLevel, AuditLog
from changelog_ticker.utils.logging import step_timer
from changelog_ticker.utils.pacing import RequestPacer
from changelog_ticker.utils.retry import RetryConfig, calculate_backoff_delay, retry_async
from changelog_ticker.utils.serialization import to_jsonable
from changelog_ticker.summarization.domain.value_objects import DateRange


class Flaky(Exception):
    pass


class Fatal(Exception):
    pass


class TestBackoff:
    def test_exponential_growth_is_capped(self):
        config = RetryConfig(initial_delay=0.5, max_delay=4.0)
        delays = [calculate_backoff_delay(attempt, config) for attempt in range(6)]
        assert delays == [0.5, 1.0, 2.0, 4.0, 4.0, 4.0]

    def test_jitter_stays_in_range(self):
        config = RetryConfig(initial_delay=1.0, max_delay=8.0, jitter=True)
        for _ in range(20):
            assert 0.75 <= calculate_backoff_delay(0, config) <= 1.25


class TestRetryAsync:
    @pytest.mark.asyncio
    async def test_succeeds_after_retries(self):
        attempts = []
        sleeps = []
        retries = []

        async def call():
            attempts.append(1)
            if len(attempts) < 3:
                raise Flaky("try again")
            return "ok"

        async def sleep(seconds):
            sleeps.append(seconds)

        result = await retry_async(
            call,
            RetryConfig(retries=3, initial_delay=0.5),
            retry_on=(Flaky,),
            on_retry=lambda attempt, left, error: retries.append((attempt, left)),
            sleep=sleep,
        )
        assert result == "ok"
        assert len(attempts) == 3
        assert sleeps == [0.5, 1.0]
        assert retries == [(1, 3), (2, 2)]

    @pytest.mark.asyncio
    async def test_exhaustion_raises(self):
        calls = []

        async def call():
            calls.append(1)
            raise Flaky("still down")

        async def sleep(seconds):
            return None

        with pytest.raises(RetryExhaustedError) as excinfo:
            await retry_async(call, RetryConfig(retries=2), retry_on=(Flaky,), sleep=sleep)
        assert len(calls) == 3
        assert excinfo.value.attempts == 3
        assert isinstance(excinfo.value.last_exception, Flaky)

    @pytest.mark.asyncio
    async def test_non_retryable_error_propagates_immediately(self):
        calls = []

        async def call():
            calls.append(1)
            raise Fatal("no")

        with pytest.raises(Fatal):
            await retry_async(call, RetryConfig(retries=3), retry_on=(Flaky,))
        assert len(calls) == 1


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class TestRequestPacer:
    @pytest.mark.asyncio
    async def test_first_acquire_is_immediate(self):
        clock = FakeClock()
        pacer = RequestPacer(1.0, clock=clock, sleep=clock.sleep)
        assert await pacer.acquire() == 0.0
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_waits_for_remaining_interval(self):
        clock = FakeClock()
        pacer = RequestPacer(1.0, clock=clock, sleep=clock.sleep)
        await pacer.acquire()
        clock.now += 0.25
        waited = await pacer.acquire()
        assert waited == pytest.approx(0.75)
        assert pacer.total_wait_seconds == pytest.approx(0.75)

    @pytest.mark.asyncio
    async def test_no_wait_after_interval_elapsed(self):
        clock = FakeClock()
        pacer = RequestPacer(1.0, clock=clock, sleep=clock.sleep)
        await pacer.acquire()
        clock.now += 5
        assert await pacer.acquire() == 0.0

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            RequestPacer(-1)


class TestAuditLog:
    def test_entries_are_recorded_and_mirrored(self, caplog):
        audit = AuditLog(logging.getLogger("test.audit"), clock=lambda: "2024-05-01T00:00:00+00:00")
        with caplog.at_level(logging.INFO, logger="test.audit"):
            audit.info("fetch_started", total=3)
            audit.warn("commit_skipped_missing", sha="abc")
            audit.error("fetch_failed")

        assert [entry.level for entry in audit.entries] == [
            AuditLevel.INFO,
            AuditLevel.WARN,
            AuditLevel.ERROR,
        ]
        assert audit.entries[0].details == {"total": 3}
        assert audit.entries[0].timestamp == "2024-05-01T00:00:00+00:00"
        assert "commit_skipped_missing" in caplog.text

    def test_tail(self):
        audit = AuditLog(logging.getLogger("test.audit"))
        for index in range(5):
            audit.info(f"event_{index}")
        assert [entry.message for entry in audit.tail(2)] == ["event_3", "event_4"]
        assert audit.tail(0) == ()

    def test_message_detail_does_not_clash(self):
        audit = AuditLog(logging.getLogger("test.audit"))
        audit.warn("fetch_batch_retry", attempt=1, message="GitHub returned HTTP 502")
        assert audit.entries[0].message == "fetch_batch_retry"
        assert audit.entries[0].details == {"attempt": 1, "message": "GitHub returned HTTP 502"}


class TestStepTimer:
    def test_measures_duration(self):
        with step_timer("unit") as timer:
            pass
        assert timer.duration_ms >= 0


class TestToJsonable:
    def test_converts_dataclasses_enums_and_dates(self):
        value = {
            CommitCategory.FIXES: (DateRange(start=date(2024, 1, 1)),),
        }
        assert to_jsonable(value) == {"fixes": [{"start": "2024-01-01", "end": None}]}
