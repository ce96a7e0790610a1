"""
Cost Control Infrastructure Repositories
========================================

SQLAlchemy implementations of the ledger and limits store.

Each method runs in its own unit of work obtained from the injected session
context factory; the governor is long-lived and shared between requests and
background jobs, so it never holds a session.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, func, select

from helpdesk_ai.cost_control.application import ICostLimitsStore, IUsageLedger
from helpdesk_ai.cost_control.domain import CostLimits, UsageRecord
from helpdesk_ai.cost_control.infrastructure.models import CostLimitsModel, UsageRecordModel
from helpdesk_ai.infrastructure.database import SessionContextFactory, as_utc

LIMITS_ROW_ID = 1


def _to_domain(model: UsageRecordModel) -> UsageRecord:
    return UsageRecord(
        id=model.id,
        timestamp=as_utc(model.timestamp),
        model_id=model.model_id,
        input_tokens=model.input_tokens,
        output_tokens=model.output_tokens,
        estimated_cost=model.estimated_cost,
        operation=model.operation,
        user_id=model.user_id,
        ticket_id=model.ticket_id,
    )


class SQLAlchemyUsageLedger(IUsageLedger):
    """SQLAlchemy implementation of the usage ledger."""

    def __init__(self, session_context: SessionContextFactory):
        self._session_context = session_context

    async def append(self, record: UsageRecord) -> UsageRecord:
        model = UsageRecordModel(
            timestamp=record.timestamp,
            model_id=record.model_id,
            input_tokens=record.input_tokens,
            output_tokens=record.output_tokens,
            estimated_cost=record.estimated_cost,
            operation=record.operation,
            user_id=record.user_id,
            ticket_id=record.ticket_id,
        )
        async with self._session_context() as session:
            session.add(model)
            await session.flush()
            return _to_domain(model)

    async def prune_before(self, cutoff: datetime) -> int:
        async with self._session_context() as session:
            result = await session.execute(
                delete(UsageRecordModel).where(UsageRecordModel.timestamp < cutoff)
            )
            return result.rowcount or 0

    async def list_between(self, start: datetime, end: datetime) -> List[UsageRecord]:
        stmt = (
            select(UsageRecordModel)
            .where(UsageRecordModel.timestamp >= start, UsageRecordModel.timestamp < end)
            .order_by(UsageRecordModel.timestamp, UsageRecordModel.id)
        )
        async with self._session_context() as session:
            result = await session.execute(stmt)
            return [_to_domain(m) for m in result.scalars().all()]

    async def count_since(self, since: datetime) -> int:
        stmt = select(func.count(UsageRecordModel.id)).where(UsageRecordModel.timestamp >= since)
        async with self._session_context() as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def recent(self, limit: int) -> List[UsageRecord]:
        stmt = (
            select(UsageRecordModel)
            .order_by(UsageRecordModel.timestamp.desc(), UsageRecordModel.id.desc())
            .limit(limit)
        )
        async with self._session_context() as session:
            result = await session.execute(stmt)
            return [_to_domain(m) for m in result.scalars().all()]

    async def clear(self) -> int:
        async with self._session_context() as session:
            result = await session.execute(delete(UsageRecordModel))
            return result.rowcount or 0


class SQLAlchemyCostLimitsStore(ICostLimitsStore):
    """SQLAlchemy implementation of the singleton limits row."""

    def __init__(self, session_context: SessionContextFactory):
        self._session_context = session_context

    async def get(self) -> Optional[CostLimits]:
        async with self._session_context() as session:
            model = await session.get(CostLimitsModel, LIMITS_ROW_ID)
            if model is None:
                return None
            return CostLimits(
                daily_limit_usd=model.daily_limit_usd,
                monthly_limit_usd=model.monthly_limit_usd,
                max_tokens_per_request=model.max_tokens_per_request,
                max_requests_per_day=model.max_requests_per_day,
                max_requests_per_hour=model.max_requests_per_hour,
                is_free_tier_account=model.is_free_tier_account,
            )

    async def save(self, limits: CostLimits) -> CostLimits:
        async with self._session_context() as session:
            model = await session.get(CostLimitsModel, LIMITS_ROW_ID)
            if model is None:
                model = CostLimitsModel(id=LIMITS_ROW_ID)
                session.add(model)
            for name, value in limits.to_dict().items():
                setattr(model, name, value)
            model.updated_at = datetime.now(timezone.utc)
            await session.flush()
        return limits
