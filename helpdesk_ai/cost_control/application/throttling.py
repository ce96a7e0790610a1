"""
Fast-path request throttling.

Cheap in-process counters checked before the ledger-backed budget gate: a
global per-minute ceiling and a per-user hourly ceiling. State lives in the
injected ``ICounterStore``; with the in-memory store it is per process and
does not survive horizontal scaling.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from helpdesk_ai.config.ai_settings import AISettings
from helpdesk_ai.shared.infrastructure.counters import ICounterStore
from helpdesk_ai.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

GLOBAL_MINUTE_KEY = "ai:global:minute"


def user_hour_key(user_id: str) -> str:
    return f"ai:user:{user_id}:hour"


@dataclass(frozen=True)
class ThrottleDecision:
    allowed: bool
    reason: Optional[str] = None
    retry_at: Optional[datetime] = None


class RequestThrottle:
    """Per-minute global and per-hour per-user request ceilings."""

    MINUTE = timedelta(minutes=1)
    HOUR = timedelta(hours=1)

    def __init__(
        self,
        counters: ICounterStore,
        settings_provider: Callable[[], AISettings]
    ):
        self._counters = counters
        self._settings = settings_provider

    async def acquire(self, user_id: Optional[str] = None) -> ThrottleDecision:
        """Count a request if it is within both ceilings, otherwise refuse it."""
        current = self._settings()

        window = await self._counters.peek(GLOBAL_MINUTE_KEY)
        if window is not None and window.count >= current.max_requests_per_minute:
            return self._deny(
                f"AI request rate limit exceeded. Limit: {current.max_requests_per_minute} per minute",
                window.reset_at,
            )

        if user_id:
            window = await self._counters.peek(user_hour_key(user_id))
            if window is not None and window.count >= current.max_requests_per_user_per_hour:
                return self._deny(
                    f"AI request limit exceeded for user. "
                    f"Limit: {current.max_requests_per_user_per_hour} per hour",
                    window.reset_at,
                    user_id=user_id,
                )

        await self._counters.increment(GLOBAL_MINUTE_KEY, self.MINUTE)
        if user_id:
            await self._counters.increment(user_hour_key(user_id), self.HOUR)
        return ThrottleDecision(allowed=True)

    def _deny(self, reason: str, retry_at: datetime, user_id: Optional[str] = None) -> ThrottleDecision:
        logger.warning(
            "AI request throttled",
            extra={"reason": reason, "user_id": user_id, "retry_at": retry_at.isoformat()}
        )
        return ThrottleDecision(allowed=False, reason=reason, retry_at=retry_at)

    async def prune(self) -> int:
        removed = await self._counters.prune()
        if removed:
            logger.debug("Pruned throttle counters", extra={"removed": removed})
        return removed
