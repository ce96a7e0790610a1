"""
Cost Control Application Services
=================================

The CostGovernor owns the usage ledger and the spend/rate limits. Every
model call is vetted by ``should_block`` before it is sent and recorded by
``record_usage`` after it returns.

Following SOLID principles:
- Dependency Inversion: the governor depends on the ledger/limits
  interfaces below, not on SQLAlchemy
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

from helpdesk_ai.core import ValidationException
from helpdesk_ai.cost_control.domain import (
    BlockDecision,
    CostLimits,
    DEFAULT_FREE_TIER_LIMITS,
    FREE_TIER_CAPS,
    LIMIT_FIELDS,
    PRICING_TABLE,
    PricingTable,
    UsageRecord,
    UsageSummary,
    calculate_cost,
    estimate_tokens,
)
from helpdesk_ai.shared.infrastructure.clock import Clock, SystemClock
from helpdesk_ai.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IUsageLedger(ABC):
    """Append-only store of UsageRecords."""

    @abstractmethod
    async def append(self, record: UsageRecord) -> UsageRecord:
        """Persist a record; returns it with its id set."""

    @abstractmethod
    async def prune_before(self, cutoff: datetime) -> int:
        """Delete records older than ``cutoff``. Returns number removed."""

    @abstractmethod
    async def list_between(self, start: datetime, end: datetime) -> List[UsageRecord]:
        """Records with ``start <= timestamp < end``, oldest first."""

    @abstractmethod
    async def count_since(self, since: datetime) -> int:
        """Number of records with ``timestamp >= since``."""

    @abstractmethod
    async def recent(self, limit: int) -> List[UsageRecord]:
        """The ``limit`` newest records, newest first."""

    @abstractmethod
    async def clear(self) -> int:
        """Delete every record. Returns number removed."""


class ICostLimitsStore(ABC):
    """Singleton store for CostLimits."""

    @abstractmethod
    async def get(self) -> Optional[CostLimits]:
        """The active limits, or None if never stored."""

    @abstractmethod
    async def save(self, limits: CostLimits) -> CostLimits:
        """Replace the active limits."""


# ========== Application Services ==========

def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def _month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


class CostGovernor:
    """
    Durable usage ledger plus spend and rate limiter.

    Ledger writes (append + prune) are serialized by an asyncio lock, so a
    process has a single writer; cross-process safety comes from the
    transactional store behind ``IUsageLedger``. Store failures propagate to
    the caller.
    """

    RETENTION = timedelta(days=30)
    RECENT_RECORDS = 10

    def __init__(
        self,
        ledger: IUsageLedger,
        limits_store: ICostLimitsStore,
        clock: Optional[Clock] = None,
        pricing: PricingTable = PRICING_TABLE
    ):
        self._ledger = ledger
        self._limits_store = limits_store
        self._clock = clock or SystemClock()
        self._pricing = pricing
        self._write_lock = asyncio.Lock()

    # ---------- Estimation ----------

    def estimate_tokens(self, text: str) -> int:
        return estimate_tokens(text)

    def estimate_cost(self, model_id: str, input_tokens: int, output_tokens: int) -> float:
        return calculate_cost(model_id, input_tokens, output_tokens, self._pricing)

    # ---------- Ledger ----------

    async def record_usage(
        self,
        model_id: str,
        input_tokens: int,
        output_tokens: int,
        operation: str,
        user_id: Optional[str] = None,
        ticket_id: Optional[str] = None
    ) -> UsageRecord:
        """Append a usage record, then prune the ledger to the retention window."""
        record = UsageRecord(
            timestamp=self._clock.now(),
            model_id=model_id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            estimated_cost=self.estimate_cost(model_id, input_tokens, output_tokens),
            operation=operation,
            user_id=user_id,
            ticket_id=ticket_id,
        )

        async with self._write_lock:
            saved = await self._ledger.append(record)
            pruned = await self._ledger.prune_before(record.timestamp - self.RETENTION)

        logger.info(
            "Model usage recorded",
            extra={
                "model_id": model_id,
                "operation": operation,
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "cost_usd": record.estimated_cost,
                "ticket_id": ticket_id,
                "pruned_records": pruned,
            }
        )
        return saved

    async def _summarize(self, start: datetime, end: datetime) -> UsageSummary:
        summary = UsageSummary()
        for record in await self._ledger.list_between(start, end):
            summary.add(record)
        return summary

    async def get_daily_usage(self, day: Optional[date] = None) -> UsageSummary:
        """Usage for a UTC calendar day (today by default)."""
        day = day or self._clock.now().date()
        return await self._summarize(*_day_bounds(day))

    async def get_monthly_usage(
        self,
        year: Optional[int] = None,
        month: Optional[int] = None
    ) -> UsageSummary:
        """Usage for a UTC calendar month (current month by default)."""
        now = self._clock.now()
        return await self._summarize(*_month_bounds(year or now.year, month or now.month))

    # ---------- Limits ----------

    async def get_limits(self) -> CostLimits:
        """
        Active limits. On first load the free-tier defaults (within the
        free-tier caps) are persisted and returned.
        """
        limits = await self._limits_store.get()
        if limits is None:
            limits = DEFAULT_FREE_TIER_LIMITS.clamped_to(FREE_TIER_CAPS)
            limits = await self._limits_store.save(limits)
            logger.info("No cost limits stored, seeded free-tier defaults", extra=limits.to_dict())
        return limits

    async def update_limits(self, partial: Mapping[str, Any]) -> CostLimits:
        """
        Merge ``partial`` into the stored limits.

        Free-tier accounts are clamped to the free-tier caps whatever the
        requested values are.
        """
        for name in LIMIT_FIELDS:
            value = partial.get(name)
            if value is not None and value < 0:
                raise ValidationException(f"{name} must not be negative", {"field": name})

        merged = (await self.get_limits()).merged(partial)
        if merged.is_free_tier_account:
            merged = merged.clamped_to(FREE_TIER_CAPS)

        saved = await self._limits_store.save(merged)
        logger.info("Cost limits updated", extra=saved.to_dict())
        return saved

    # ---------- Gate ----------

    async def should_block(
        self,
        model_id: str,
        est_input_tokens: int,
        est_output_tokens: int,
        operation: str
    ) -> BlockDecision:
        """
        Check a prospective call against the limits.

        Checks run in a fixed order and the first violation wins: daily
        spend, monthly spend, per-request tokens, daily request count,
        hourly request count (sliding 60 minutes).
        """
        limits = await self.get_limits()
        cost = self.estimate_cost(model_id, est_input_tokens, est_output_tokens)
        now = self._clock.now()

        def blocked(reason: str) -> BlockDecision:
            logger.warning(
                "Model call blocked",
                extra={"model_id": model_id, "operation": operation, "reason": reason, "cost_usd": cost}
            )
            return BlockDecision(blocked=True, estimated_cost=cost, reason=reason)

        daily = await self.get_daily_usage(now.date())
        if daily.total_cost + cost > limits.daily_limit_usd:
            return blocked(
                f"Daily cost limit exceeded. Current: ${daily.total_cost:.4f}, "
                f"Request: ${cost:.4f}, Limit: ${limits.daily_limit_usd:.2f}"
            )

        monthly = await self.get_monthly_usage(now.year, now.month)
        if monthly.total_cost + cost > limits.monthly_limit_usd:
            return blocked(
                f"Monthly cost limit exceeded. Current: ${monthly.total_cost:.4f}, "
                f"Request: ${cost:.4f}, Limit: ${limits.monthly_limit_usd:.2f}"
            )

        requested_tokens = est_input_tokens + est_output_tokens
        if requested_tokens > limits.max_tokens_per_request:
            return blocked(
                f"Request exceeds max tokens per request. "
                f"Request: {requested_tokens}, Limit: {limits.max_tokens_per_request}"
            )

        if daily.request_count >= limits.max_requests_per_day:
            return blocked(
                f"Daily request limit exceeded. "
                f"Current: {daily.request_count}, Limit: {limits.max_requests_per_day}"
            )

        hourly_count = await self._ledger.count_since(now - timedelta(hours=1))
        if hourly_count >= limits.max_requests_per_hour:
            return blocked(
                f"Hourly request limit exceeded. "
                f"Current: {hourly_count}, Limit: {limits.max_requests_per_hour}"
            )

        return BlockDecision(blocked=False, estimated_cost=cost)

    # ---------- Reporting ----------

    async def get_cost_statistics(self) -> Dict[str, Any]:
        """Today's and this month's usage, the limits and the latest records."""
        daily = await self.get_daily_usage()
        monthly = await self.get_monthly_usage()
        limits = await self.get_limits()
        recent = await self._ledger.recent(self.RECENT_RECORDS)
        return {
            "daily": daily.to_dict(),
            "monthly": monthly.to_dict(),
            "limits": limits.to_dict(),
            "recent_usage": [record.to_dict() for record in recent],
        }

    async def export_usage(self, start: datetime, end: datetime) -> List[UsageRecord]:
        if end <= start:
            raise ValidationException("Export end must be after start")
        return await self._ledger.list_between(start, end)

    async def reset_usage(self) -> int:
        async with self._write_lock:
            removed = await self._ledger.clear()
        logger.warning("Usage ledger reset", extra={"removed_records": removed})
        return removed
