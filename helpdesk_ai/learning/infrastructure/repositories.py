"""
Learning Infrastructure Repositories
====================================

SQLAlchemy implementations of the learning queue and run repositories.
"""

from typing import List, Optional, Sequence

from sqlalchemy import select

from helpdesk_ai.config import QueueStatus
from helpdesk_ai.infrastructure.database import SessionContextFactory, as_utc
from helpdesk_ai.learning.application import ILearningQueueRepository, ILearningRunRepository
from helpdesk_ai.learning.domain import LearningQueueItem, MiningStats
from helpdesk_ai.learning.infrastructure.models import LearningQueueItemModel, LearningRunModel


def _item(model: LearningQueueItemModel) -> LearningQueueItem:
    return LearningQueueItem(
        id=model.id,
        ticket_id=model.ticket_id,
        status=model.status,
        processing_attempts=model.processing_attempts,
        processed_at=as_utc(model.processed_at),
        error=model.error,
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


class SQLAlchemyLearningQueueRepository(ILearningQueueRepository):
    """SQLAlchemy implementation of the learning queue."""

    def __init__(self, session_context: SessionContextFactory):
        self._session_context = session_context

    async def add(self, item: LearningQueueItem) -> LearningQueueItem:
        model = LearningQueueItemModel(
            ticket_id=item.ticket_id,
            status=item.status,
            processing_attempts=item.processing_attempts,
            processed_at=item.processed_at,
            error=item.error,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )
        async with self._session_context() as session:
            session.add(model)
            await session.flush()
            return _item(model)

    async def get_active_for_ticket(self, ticket_id: str) -> Optional[LearningQueueItem]:
        stmt = (
            select(LearningQueueItemModel)
            .where(
                LearningQueueItemModel.ticket_id == ticket_id,
                LearningQueueItemModel.status.in_([QueueStatus.PENDING, QueueStatus.PROCESSING]),
            )
            .order_by(LearningQueueItemModel.id)
            .limit(1)
        )
        async with self._session_context() as session:
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            return _item(model) if model else None

    async def list_items(self, status: Optional[str] = None) -> List[LearningQueueItem]:
        stmt = select(LearningQueueItemModel).order_by(LearningQueueItemModel.id)
        if status is not None:
            stmt = stmt.where(LearningQueueItemModel.status == status)
        async with self._session_context() as session:
            result = await session.execute(stmt)
            return [_item(m) for m in result.scalars().all()]

    async def update_many(self, items: Sequence[LearningQueueItem]) -> None:
        ids = [item.id for item in items if item.id is not None]
        if not ids:
            return
        by_id = {item.id: item for item in items}
        async with self._session_context() as session:
            result = await session.execute(
                select(LearningQueueItemModel).where(LearningQueueItemModel.id.in_(ids))
            )
            for model in result.scalars().all():
                item = by_id[model.id]
                model.status = item.status
                model.processing_attempts = item.processing_attempts
                model.processed_at = item.processed_at
                model.error = item.error
                model.updated_at = item.updated_at


class SQLAlchemyLearningRunRepository(ILearningRunRepository):
    """SQLAlchemy implementation of mining run statistics."""

    def __init__(self, session_context: SessionContextFactory):
        self._session_context = session_context

    @staticmethod
    def _to_domain(model: LearningRunModel) -> MiningStats:
        return MiningStats(
            id=model.id,
            tickets_analyzed=model.tickets_analyzed,
            patterns_found=model.patterns_found,
            articles_created=model.articles_created,
            articles_published=model.articles_published,
            run_at=as_utc(model.run_at),
        )

    async def create(self, stats: MiningStats) -> MiningStats:
        model = LearningRunModel(
            tickets_analyzed=stats.tickets_analyzed,
            patterns_found=stats.patterns_found,
            articles_created=stats.articles_created,
            articles_published=stats.articles_published,
            run_at=stats.run_at,
        )
        async with self._session_context() as session:
            session.add(model)
            await session.flush()
            return self._to_domain(model)

    async def list_recent(self, limit: int = 10) -> List[MiningStats]:
        stmt = select(LearningRunModel).order_by(LearningRunModel.run_at.desc(), LearningRunModel.id.desc()).limit(limit)
        async with self._session_context() as session:
            result = await session.execute(stmt)
            return [self._to_domain(m) for m in result.scalars().all()]
