"""Circuit breaker around the text generation capability."""

import logging

from changelog_ticker.errors import TextGenerationUnavailableError
from changelog_ticker.summarization.repositories.interfaces import TextGenerationRepository

logger = logging.getLogger(__name__)


class GenerationCircuitBreaker(TextGenerationRepository):
    """
    Count model calls and fail fast when the model keeps returning nothing.

    A ``None`` result is a capability failure. Text that later fails to
    decode is not, since the model is reachable. After
    ``max_consecutive_failures`` failures in a row the breaker raises
    TextGenerationUnavailableError, which fails the job.
    """

    def __init__(
        self,
        text_generator: TextGenerationRepository,
        stage: str,
        max_consecutive_failures: int = 3,
    ) -> None:
        if max_consecutive_failures < 1:
            raise ValueError("max_consecutive_failures must be at least 1")
        self._text_generator = text_generator
        self._stage = stage
        self._max_failures = max_consecutive_failures
        self._consecutive_failures = 0
        self.calls = 0
        self.failures = 0

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    async def generate(self, system_prompt: str, user_prompt: str) -> str | None:
        """
        Delegate to the wrapped generator and track failures.

        Raises:
            TextGenerationUnavailableError: When the failure streak reaches the limit
        """
        self.calls += 1
        result = await self._text_generator.generate(system_prompt, user_prompt)

        if result is not None:
            self._consecutive_failures = 0
            return result

        self.failures += 1
        self._consecutive_failures += 1
        logger.warning(
            "Text generation returned no result during %s (%d/%d in a row)",
            self._stage,
            self._consecutive_failures,
            self._max_failures,
        )
        if self._consecutive_failures >= self._max_failures:
            raise TextGenerationUnavailableError(self._stage, self._consecutive_failures)
        return None
