"""
Triage Infrastructure Repositories
==================================

SQLAlchemy implementations of the triage repository interfaces.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select

from helpdesk_ai.infrastructure.database import SessionContextFactory, as_utc
from helpdesk_ai.triage.application import (
    IAIAnalyticsRepository,
    IAutoResponseRepository,
    IComplexityScoreRepository,
)
from helpdesk_ai.triage.domain import AIAnalyticsRecord, AutoResponseRecord, ComplexityScore
from helpdesk_ai.triage.infrastructure.models import (
    AIAnalyticsModel,
    AutoResponseModel,
    ComplexityScoreModel,
)


def _score(model: ComplexityScoreModel) -> ComplexityScore:
    return ComplexityScore(
        ticket_id=model.ticket_id,
        score=model.score,
        factors=dict(model.factors or {}),
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


class SQLAlchemyComplexityScoreRepository(IComplexityScoreRepository):
    """SQLAlchemy implementation of complexity score storage."""

    def __init__(self, session_context: SessionContextFactory):
        self._session_context = session_context

    async def upsert(self, score: ComplexityScore) -> ComplexityScore:
        now = datetime.now(timezone.utc)
        async with self._session_context() as session:
            result = await session.execute(
                select(ComplexityScoreModel).where(ComplexityScoreModel.ticket_id == score.ticket_id)
            )
            model = result.scalar_one_or_none()
            if model is None:
                model = ComplexityScoreModel(ticket_id=score.ticket_id, created_at=now)
                session.add(model)
            else:
                model.updated_at = now
            model.score = score.score
            model.factors = dict(score.factors)
            await session.flush()
            return _score(model)

    async def get_by_ticket(self, ticket_id: str) -> Optional[ComplexityScore]:
        async with self._session_context() as session:
            result = await session.execute(
                select(ComplexityScoreModel).where(ComplexityScoreModel.ticket_id == ticket_id)
            )
            model = result.scalar_one_or_none()
            return _score(model) if model else None


class SQLAlchemyAutoResponseRepository(IAutoResponseRepository):
    """SQLAlchemy implementation of auto-response storage."""

    def __init__(self, session_context: SessionContextFactory):
        self._session_context = session_context

    @staticmethod
    def _to_domain(model: AutoResponseModel) -> AutoResponseRecord:
        return AutoResponseRecord(
            id=model.id,
            ticket_id=model.ticket_id,
            response=model.response,
            confidence=model.confidence,
            applied=model.applied,
            knowledge_base_articles=list(model.knowledge_base_articles or []),
            follow_up_actions=list(model.follow_up_actions or []),
            created_at=as_utc(model.created_at),
        )

    async def create(self, record: AutoResponseRecord) -> AutoResponseRecord:
        model = AutoResponseModel(
            ticket_id=record.ticket_id,
            response=record.response,
            confidence=record.confidence,
            applied=record.applied,
            knowledge_base_articles=list(record.knowledge_base_articles),
            follow_up_actions=list(record.follow_up_actions),
            created_at=datetime.now(timezone.utc),
        )
        async with self._session_context() as session:
            session.add(model)
            await session.flush()
            return self._to_domain(model)

    async def list_for_ticket(self, ticket_id: str) -> List[AutoResponseRecord]:
        stmt = (
            select(AutoResponseModel)
            .where(AutoResponseModel.ticket_id == ticket_id)
            .order_by(AutoResponseModel.id)
        )
        async with self._session_context() as session:
            result = await session.execute(stmt)
            return [self._to_domain(m) for m in result.scalars().all()]


class SQLAlchemyAIAnalyticsRepository(IAIAnalyticsRepository):
    """SQLAlchemy implementation of analytics storage."""

    def __init__(self, session_context: SessionContextFactory):
        self._session_context = session_context

    async def create(self, record: AIAnalyticsRecord) -> AIAnalyticsRecord:
        model = AIAnalyticsModel(
            ticket_id=record.ticket_id,
            analysis_performed=record.analysis_performed,
            response_generated=record.response_generated,
            response_applied=record.response_applied,
            confidence=record.confidence,
            complexity=record.complexity,
            created_at=datetime.now(timezone.utc),
        )
        async with self._session_context() as session:
            session.add(model)
            await session.flush()
            return AIAnalyticsRecord(
                id=model.id,
                ticket_id=model.ticket_id,
                analysis_performed=model.analysis_performed,
                response_generated=model.response_generated,
                response_applied=model.response_applied,
                confidence=model.confidence,
                complexity=model.complexity,
                created_at=as_utc(model.created_at),
            )
