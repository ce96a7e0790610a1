"""
Windowed Counter Store
======================

Fixed-window counters used for fast-path request throttling.

``InMemoryCounterStore`` is process-local: counts are not shared between
workers or instances and are lost on restart. Multi-instance deployments
need an ``ICounterStore`` backed by a shared store (e.g. Redis INCR +
EXPIRE) wired in its place.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict

from helpdesk_ai.shared.infrastructure.clock import Clock


@dataclass
class CounterWindow:
    """Current count of a key and when its window resets."""
    count: int
    reset_at: datetime


class ICounterStore(ABC):
    """Interface for windowed counters."""

    @abstractmethod
    async def increment(self, key: str, window: timedelta) -> CounterWindow:
        """Count one hit for ``key``; starts a new window if the old one expired."""

    @abstractmethod
    async def peek(self, key: str) -> CounterWindow | None:
        """Current window for ``key`` without counting, None if absent/expired."""

    @abstractmethod
    async def prune(self) -> int:
        """Drop expired windows. Returns number removed."""


class InMemoryCounterStore(ICounterStore):
    """Dictionary-backed counters for a single process."""

    def __init__(self, clock: Clock):
        self._clock = clock
        self._windows: Dict[str, CounterWindow] = {}
        self._lock = asyncio.Lock()

    async def increment(self, key: str, window: timedelta) -> CounterWindow:
        async with self._lock:
            now = self._clock.now()
            current = self._windows.get(key)
            if current is None or now >= current.reset_at:
                current = CounterWindow(count=0, reset_at=now + window)
                self._windows[key] = current
            current.count += 1
            return CounterWindow(count=current.count, reset_at=current.reset_at)

    async def peek(self, key: str) -> CounterWindow | None:
        current = self._windows.get(key)
        if current is None or self._clock.now() >= current.reset_at:
            return None
        return CounterWindow(count=current.count, reset_at=current.reset_at)

    async def prune(self) -> int:
        async with self._lock:
            now = self._clock.now()
            expired = [key for key, w in self._windows.items() if now >= w.reset_at]
            for key in expired:
                del self._windows[key]
            return len(expired)

    def __len__(self) -> int:
        return len(self._windows)
