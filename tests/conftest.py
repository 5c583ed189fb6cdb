from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

import pytest

FIXED_NOW = datetime(2025, 5, 19, 12, 0, 0)


class ManualClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, instant: datetime = FIXED_NOW) -> None:
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def tick(self, *, seconds: float) -> None:
        self._instant += timedelta(seconds=max(0.0, float(seconds)))


@dataclass
class _Job:
    interval: float
    tick: Callable[[], None]
    next_due: float
    active: bool = True


class ManualScheduler:
    """Repeating-timer stand-in driven by ``advance``."""

    def __init__(self, clock: ManualClock) -> None:
        self.clock = clock
        self.jobs: list[_Job] = []
        self._elapsed = 0.0

    def __call__(self, interval: float, tick: Callable[[], None]) -> Callable[[], None]:
        job = _Job(interval, tick, self._elapsed + interval)
        self.jobs.append(job)

        def cancel() -> None:
            job.active = False

        return cancel

    def advance(self, seconds: float) -> None:
        target = self._elapsed + seconds
        while True:
            due = [job for job in self.jobs if job.active and job.next_due <= target]
            if not due:
                break
            job = min(due, key=lambda j: j.next_due)
            self.clock.tick(seconds=job.next_due - self._elapsed)
            self._elapsed = job.next_due
            job.next_due += job.interval
            job.tick()
        self.clock.tick(seconds=target - self._elapsed)
        self._elapsed = target

    @property
    def active_jobs(self) -> int:
        return sum(1 for job in self.jobs if job.active)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def scheduler(clock: ManualClock) -> ManualScheduler:
    return ManualScheduler(clock)
