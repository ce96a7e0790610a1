"""
Tests for pricing and the CostGovernor

Covers the static pricing table, limit seeding and clamping, the ordered
budget gate and the usage ledger bookkeeping.
"""
from datetime import datetime, timedelta, timezone

import pytest

from conftest import CLAUDE_SONNET, NOW, InMemoryCostLimitsStore, InMemoryUsageLedger
from helpdesk_ai.core import ValidationException
from helpdesk_ai.cost_control.application import CostGovernor
from helpdesk_ai.cost_control.domain import (
    DEFAULT_PAID_LIMITS,
    FREE_TIER_CAPS,
    CostLimits,
    UsageRecord,
    calculate_cost,
    estimate_tokens,
)


def _record(timestamp: datetime, cost: float = 0.0, operation: str = "ticketAnalysis") -> UsageRecord:
    return UsageRecord(
        timestamp=timestamp,
        model_id=CLAUDE_SONNET,
        input_tokens=100,
        output_tokens=50,
        estimated_cost=cost,
        operation=operation,
    )


def _limits(**overrides) -> CostLimits:
    values = dict(
        daily_limit_usd=100.0,
        monthly_limit_usd=1000.0,
        max_tokens_per_request=4000,
        max_requests_per_day=100,
        max_requests_per_hour=100,
        is_free_tier_account=False,
    )
    values.update(overrides)
    return CostLimits(**values)


class TestPricing:
    """Tests for token estimation and cost calculation."""

    def test_known_model_cost(self):
        # 1000 * $3/M + 500 * $15/M
        assert calculate_cost(CLAUDE_SONNET, 1000, 500) == pytest.approx(0.0105)

    def test_unknown_model_priced_as_default(self):
        # Titan Express: $0.80/M in, $3.20/M out
        assert calculate_cost("acme.unknown-model", 1000, 1000) == pytest.approx(0.004)

    def test_cost_keeps_sub_cent_precision(self):
        assert calculate_cost("gpt-4o-mini", 1, 0) == pytest.approx(0.00000015)

    def test_negative_tokens_cost_nothing(self):
        assert calculate_cost(CLAUDE_SONNET, -10, -10) == 0.0

    def test_estimate_tokens_rounds_up(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2


class TestLimits:
    """Tests for limit seeding and updates."""

    @pytest.mark.asyncio
    async def test_first_load_seeds_free_tier_defaults_within_caps(self, clock):
        store = InMemoryCostLimitsStore(None)
        governor = CostGovernor(InMemoryUsageLedger(), store, clock=clock)

        limits = await governor.get_limits()

        assert limits.is_free_tier_account is True
        assert limits.daily_limit_usd == 3.0
        assert limits.monthly_limit_usd == 25.0
        assert limits.max_tokens_per_request == 1000
        assert limits.max_requests_per_day == 50
        assert limits.max_requests_per_hour == 10
        assert store.saves == 1

        # Second load reads the stored row
        await governor.get_limits()
        assert store.saves == 1

    @pytest.mark.asyncio
    async def test_free_tier_update_is_clamped_to_caps(self, clock):
        governor = CostGovernor(InMemoryUsageLedger(), InMemoryCostLimitsStore(None), clock=clock)

        limits = await governor.update_limits({"daily_limit_usd": 10.0, "max_requests_per_hour": 5000})

        assert limits.daily_limit_usd == FREE_TIER_CAPS.daily_limit_usd
        assert limits.max_requests_per_hour == FREE_TIER_CAPS.max_requests_per_hour

    @pytest.mark.asyncio
    async def test_zero_free_tier_value_takes_the_cap(self, clock):
        governor = CostGovernor(InMemoryUsageLedger(), InMemoryCostLimitsStore(None), clock=clock)

        limits = await governor.update_limits({"max_requests_per_day": 0})

        assert limits.max_requests_per_day == FREE_TIER_CAPS.max_requests_per_day

    @pytest.mark.asyncio
    async def test_paid_account_is_not_clamped(self, governor):
        limits = await governor.update_limits({"daily_limit_usd": 250.0})

        assert limits.daily_limit_usd == 250.0
        assert limits.monthly_limit_usd == DEFAULT_PAID_LIMITS.monthly_limit_usd

    @pytest.mark.asyncio
    async def test_leaving_free_tier_lifts_the_caps(self, clock):
        governor = CostGovernor(InMemoryUsageLedger(), InMemoryCostLimitsStore(None), clock=clock)

        limits = await governor.update_limits({"is_free_tier_account": False, "daily_limit_usd": 50.0})

        assert limits.is_free_tier_account is False
        assert limits.daily_limit_usd == 50.0

    @pytest.mark.asyncio
    async def test_negative_limit_rejected(self, governor):
        with pytest.raises(ValidationException):
            await governor.update_limits({"daily_limit_usd": -1})

    @pytest.mark.asyncio
    async def test_unknown_and_none_keys_are_ignored(self, governor):
        limits = await governor.update_limits({"daily_limit_usd": None, "bogus": 1})

        assert limits == DEFAULT_PAID_LIMITS


class TestShouldBlock:
    """Tests for the ordered budget gate."""

    @pytest.mark.asyncio
    async def test_allows_call_within_limits(self, governor):
        decision = await governor.should_block(CLAUDE_SONNET, 1000, 500, "ticketAnalysis")

        assert decision.blocked is False
        assert decision.estimated_cost == pytest.approx(0.0105)
        assert decision.reason is None

    @pytest.mark.asyncio
    async def test_daily_spend_blocks(self, ledger, limits_store, governor):
        limits_store.limits = _limits(daily_limit_usd=0.01)
        await ledger.append(_record(NOW - timedelta(hours=1), cost=0.009))

        decision = await governor.should_block(CLAUDE_SONNET, 1000, 500, "ticketAnalysis")

        assert decision.blocked is True
        assert decision.reason.startswith("Daily cost limit exceeded")
        assert decision.estimated_cost == pytest.approx(0.0105)

    @pytest.mark.asyncio
    async def test_monthly_spend_blocks(self, ledger, limits_store, governor):
        limits_store.limits = _limits(monthly_limit_usd=0.5)
        await ledger.append(_record(NOW - timedelta(days=5), cost=0.495))

        decision = await governor.should_block(CLAUDE_SONNET, 1000, 500, "ticketAnalysis")

        assert decision.blocked is True
        assert decision.reason.startswith("Monthly cost limit exceeded")

    @pytest.mark.asyncio
    async def test_first_violation_wins(self, limits_store, governor):
        limits_store.limits = _limits(daily_limit_usd=0.0, max_tokens_per_request=10)

        decision = await governor.should_block(CLAUDE_SONNET, 1000, 500, "ticketAnalysis")

        assert decision.reason.startswith("Daily cost limit exceeded")

    @pytest.mark.asyncio
    async def test_token_ceiling_blocks(self, governor):
        decision = await governor.should_block(CLAUDE_SONNET, 3000, 1500, "ticketAnalysis")

        assert decision.blocked is True
        assert decision.reason.startswith("Request exceeds max tokens per request")

    @pytest.mark.asyncio
    async def test_daily_request_count_blocks(self, ledger, limits_store, governor):
        limits_store.limits = _limits(max_requests_per_day=2)
        await ledger.append(_record(NOW - timedelta(hours=5)))
        await ledger.append(_record(NOW - timedelta(hours=4)))

        decision = await governor.should_block(CLAUDE_SONNET, 10, 10, "ticketAnalysis")

        assert decision.blocked is True
        assert decision.reason.startswith("Daily request limit exceeded")

    @pytest.mark.asyncio
    async def test_hourly_window_slides(self, ledger, limits_store, governor, clock):
        limits_store.limits = _limits(max_requests_per_hour=2)
        await ledger.append(_record(NOW - timedelta(minutes=50)))
        await ledger.append(_record(NOW - timedelta(minutes=30)))

        blocked = await governor.should_block(CLAUDE_SONNET, 10, 10, "ticketAnalysis")
        assert blocked.blocked is True
        assert blocked.reason.startswith("Hourly request limit exceeded")

        clock.advance(minutes=15)
        allowed = await governor.should_block(CLAUDE_SONNET, 10, 10, "ticketAnalysis")
        assert allowed.blocked is False


class TestLedger:
    """Tests for usage recording, summaries and reporting."""

    @pytest.mark.asyncio
    async def test_record_usage_prices_and_prunes(self, ledger, governor):
        await ledger.append(_record(NOW - timedelta(days=31)))
        await ledger.append(_record(NOW - timedelta(days=29)))

        record = await governor.record_usage(CLAUDE_SONNET, 1000, 500, "autoResponse", ticket_id="T-1")

        assert record.id is not None
        assert record.timestamp == NOW
        assert record.estimated_cost == pytest.approx(0.0105)
        assert len(ledger.records) == 2
        assert all(r.timestamp >= NOW - timedelta(days=30) for r in ledger.records)

    @pytest.mark.asyncio
    async def test_daily_usage_aggregates_utc_day(self, ledger, governor):
        await ledger.append(_record(NOW - timedelta(hours=2), cost=0.01, operation="ticketAnalysis"))
        await ledger.append(_record(NOW - timedelta(hours=1), cost=0.02, operation="autoResponse"))
        await ledger.append(_record(NOW - timedelta(days=1), cost=5.0))

        summary = await governor.get_daily_usage()

        assert summary.request_count == 2
        assert summary.total_cost == pytest.approx(0.03)
        assert summary.total_input_tokens == 200
        assert summary.operations == {"ticketAnalysis": 1, "autoResponse": 1}

    @pytest.mark.asyncio
    async def test_monthly_usage_excludes_previous_month(self, ledger, governor):
        await ledger.append(_record(datetime(2024, 6, 1, 0, 0, tzinfo=timezone.utc), cost=1.0))
        await ledger.append(_record(datetime(2024, 5, 31, 23, 59, tzinfo=timezone.utc), cost=2.0))

        summary = await governor.get_monthly_usage()

        assert summary.request_count == 1
        assert summary.total_cost == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_cost_statistics(self, ledger, governor):
        for minutes in range(12):
            await ledger.append(_record(NOW - timedelta(minutes=minutes), cost=0.001))

        stats = await governor.get_cost_statistics()

        assert set(stats) == {"daily", "monthly", "limits", "recent_usage"}
        assert stats["daily"]["request_count"] == 12
        assert len(stats["recent_usage"]) == 10
        assert stats["limits"]["daily_limit_usd"] == DEFAULT_PAID_LIMITS.daily_limit_usd

    @pytest.mark.asyncio
    async def test_export_requires_ordered_range(self, governor):
        with pytest.raises(ValidationException):
            await governor.export_usage(NOW, NOW - timedelta(days=1))

    @pytest.mark.asyncio
    async def test_export_and_reset(self, ledger, governor):
        await ledger.append(_record(NOW - timedelta(hours=3)))
        await ledger.append(_record(NOW - timedelta(days=3)))

        exported = await governor.export_usage(NOW - timedelta(days=1), NOW)
        assert len(exported) == 1

        assert await governor.reset_usage() == 2
        assert ledger.records == []
