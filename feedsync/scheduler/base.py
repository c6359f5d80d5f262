"""Scheduler contract used by the sync engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable


class BaseScheduler(ABC):
    """Run callbacks once right away or repeatedly at a fixed interval.

    Implementations make no mutual-exclusion promise between jobs; callers
    guard their own reentrancy.
    """

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def shutdown(self) -> None: ...

    @abstractmethod
    def schedule_now(self, job_id: str, callback: Callable[[], object]) -> None:
        """Run ``callback`` once, as soon as possible, without blocking the caller."""

    @abstractmethod
    def schedule_interval(
        self, job_id: str, callback: Callable[[], object], seconds: float
    ) -> None:
        """Run ``callback`` every ``seconds``; the first run is one interval from now."""

    @abstractmethod
    def remove(self, job_id: str) -> None: ...

    def list_jobs(self) -> list[dict]:
        return []


__all__ = ["BaseScheduler"]
