"""
Clock abstraction.

Services that compare against "now" (ledger windows, throttling, queue
backoff) take a Clock so tests can freeze and advance time.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone


class Clock(ABC):
    """Source of the current time (timezone-aware, UTC)."""

    @abstractmethod
    def now(self) -> datetime:
        """Current UTC time."""


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
