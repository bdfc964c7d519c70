import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

from app.logging.logger import Log

T = TypeVar("T")

DEFAULT_POOL_SIZE = 5


@dataclass(frozen=True)
class JobOutcome(Generic[T]):
    """Result of one scheduled job; exactly one of ``result``/``error`` is set."""

    index: int
    result: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BoundedScheduler:
    """Runs jobs with at most ``limit`` in flight; the rest wait their turn."""

    def __init__(self, limit: int = DEFAULT_POOL_SIZE) -> None:
        if limit < 1:
            raise ValueError("Scheduler limit must be at least 1")
        self._limit = limit
        self._in_flight = 0
        self._peak = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def peak(self) -> int:
        """Highest number of jobs seen running at once."""
        return self._peak

    async def run_all(
        self, jobs: Iterable[Callable[[], Awaitable[T]]]
    ) -> list[JobOutcome[T]]:
        """Run every job; a failing job is reported in its outcome only."""
        semaphore = asyncio.Semaphore(self._limit)

        async def guarded(index: int, job: Callable[[], Awaitable[T]]) -> JobOutcome[T]:
            async with semaphore:
                self._in_flight += 1
                self._peak = max(self._peak, self._in_flight)
                try:
                    return JobOutcome(index=index, result=await job())
                except Exception as exc:
                    Log.error(f"Job {index} failed: {exc}")
                    return JobOutcome(index=index, error=exc)
                finally:
                    self._in_flight -= 1

        return list(
            await asyncio.gather(*(guarded(i, job) for i, job in enumerate(jobs)))
        )
