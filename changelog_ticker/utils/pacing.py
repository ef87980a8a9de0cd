"""Request pacing for rate-limited external APIs."""

import asyncio
import time
from collections.abc import Awaitable, Callable


class RequestPacer:
    """
    Enforce a minimum interval between successive request groups.

    The first ``acquire`` returns immediately; later calls sleep until at
    least ``interval_seconds`` have passed since the previous acquisition.
    Clock and sleep are injectable so tests can observe the pacing without
    waiting.
    """

    def __init__(
        self,
        interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval_seconds < 0:
            raise ValueError("interval_seconds must not be negative")
        self._interval = interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None
        self._lock = asyncio.Lock()
        self.total_wait_seconds = 0.0

    @property
    def interval_seconds(self) -> float:
        return self._interval

    async def acquire(self) -> float:
        """Wait for the next slot. Returns the seconds actually waited."""
        async with self._lock:
            waited = 0.0
            if self._last is not None:
                remaining = self._interval - (self._clock() - self._last)
                if remaining > 0:
                    await self._sleep(remaining)
                    waited = remaining
            self._last = self._clock()
            self.total_wait_seconds += waited
            return waited
