"""Logging setup and the per-step duration timer."""

import logging
import time
from collections.abc import Generator
from contextlib import contextmanager

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"

logger = logging.getLogger("changelog_ticker")


def configure_logging(level: str | int = logging.INFO) -> None:
    """Configure root logging for command-line runs."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )


class StepTimer:
    """Elapsed milliseconds of one pipeline step."""

    def __init__(self) -> None:
        self._start = time.perf_counter()
        self._end: float | None = None

    def stop(self) -> None:
        if self._end is None:
            self._end = time.perf_counter()

    @property
    def duration_ms(self) -> int:
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)


@contextmanager
def step_timer(step_name: str) -> Generator[StepTimer, None, None]:
    """Context manager that logs the start and duration of a pipeline step."""
    logger.info("▶ %s started", step_name)
    timer = StepTimer()
    try:
        yield timer
    finally:
        timer.stop()
        logger.info("✔ %s finished in %d ms", step_name, timer.duration_ms)
