"""Unit tests for the text generation circuit breaker."""

import pytest

from changelog_ticker.errors import TextGenerationUnavailableError
from changelog_ticker.summarization.services.generation_guard import GenerationCircuitBreaker

from factories import FakeTextGenerator


class TestGenerationCircuitBreaker:
    @pytest.mark.asyncio
    async def test_passes_text_through(self):
        guard = GenerationCircuitBreaker(FakeTextGenerator(["hello"]), "assembly")
        assert await guard.generate("system", "user") == "hello"
        assert guard.calls == 1
        assert guard.failures == 0

    @pytest.mark.asyncio
    async def test_trips_after_consecutive_failures(self):
        guard = GenerationCircuitBreaker(FakeTextGenerator(), "impact_analysis", 3)
        assert await guard.generate("s", "u") is None
        assert await guard.generate("s", "u") is None
        with pytest.raises(TextGenerationUnavailableError) as excinfo:
            await guard.generate("s", "u")
        assert "impact_analysis" in excinfo.value.message

    @pytest.mark.asyncio
    async def test_success_resets_streak(self):
        generator = FakeTextGenerator([None, None, "ok", None, None])
        guard = GenerationCircuitBreaker(generator, "category_summarization", 3)
        for _ in range(5):
            await guard.generate("s", "u")
        assert guard.failures == 4
        assert guard.consecutive_failures == 2

    @pytest.mark.asyncio
    async def test_unparseable_text_is_not_a_failure(self):
        guard = GenerationCircuitBreaker(FakeTextGenerator(default="not json"), "assembly", 1)
        for _ in range(3):
            assert await guard.generate("s", "u") == "not json"
        assert guard.failures == 0

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            GenerationCircuitBreaker(FakeTextGenerator(), "assembly", 0)
