"""
Ticket Infrastructure Repositories
==================================

SQLAlchemy implementations of the ticket collaborator interfaces, for
deployments where the AI core shares the ticketing database.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import or_, select

from helpdesk_ai.config import ArticleStatus, TicketStatus
from helpdesk_ai.infrastructure.database import SessionContextFactory, as_utc
from helpdesk_ai.tickets.application import IKnowledgeArticleRepository, ITicketRepository
from helpdesk_ai.tickets.domain import KnowledgeArticle, Ticket, TicketComment
from helpdesk_ai.tickets.infrastructure.models import (
    KnowledgeArticleModel,
    TicketCommentModel,
    TicketModel,
)


def _ticket(model: TicketModel) -> Ticket:
    return Ticket(
        id=model.id,
        title=model.title,
        description=model.description,
        category=model.category,
        priority=model.priority,
        status=model.status,
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
        resolved_at=as_utc(model.resolved_at),
        notes=model.notes,
        team_id=model.team_id,
        assignee_id=model.assignee_id,
    )


def _comment(model: TicketCommentModel) -> TicketComment:
    return TicketComment(
        id=model.id,
        ticket_id=model.ticket_id,
        author_id=model.author_id,
        content=model.content,
        created_at=as_utc(model.created_at),
    )


def _article(model: KnowledgeArticleModel) -> KnowledgeArticle:
    return KnowledgeArticle(
        id=model.id,
        title=model.title,
        content=model.content,
        category=model.category,
        status=model.status,
        tags=list(model.tags or []),
        difficulty=model.difficulty,
        estimated_read_time=model.estimated_read_time,
        related_ticket_ids=list(model.related_ticket_ids or []),
        confidence=model.confidence,
        created_by=model.created_by,
        source=model.source,
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


class SQLAlchemyTicketRepository(ITicketRepository):
    """SQLAlchemy implementation for tickets and comments."""

    def __init__(self, session_context: SessionContextFactory):
        self._session_context = session_context

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        async with self._session_context() as session:
            model = await session.get(TicketModel, ticket_id)
            return _ticket(model) if model else None

    async def get_many(self, ticket_ids: Sequence[str]) -> List[Ticket]:
        if not ticket_ids:
            return []
        stmt = select(TicketModel).where(TicketModel.id.in_(list(ticket_ids)))
        async with self._session_context() as session:
            result = await session.execute(stmt)
            return [_ticket(m) for m in result.scalars().all()]

    async def list_resolved_between(self, start: datetime, end: datetime) -> List[Ticket]:
        stmt = (
            select(TicketModel)
            .where(
                TicketModel.status.in_([TicketStatus.RESOLVED, TicketStatus.CLOSED]),
                TicketModel.resolved_at >= start,
                TicketModel.resolved_at < end,
            )
            .order_by(TicketModel.resolved_at)
        )
        async with self._session_context() as session:
            result = await session.execute(stmt)
            return [_ticket(m) for m in result.scalars().all()]

    async def assign_to_team(self, ticket_id: str, team_id: str, assignee_id: Optional[str]) -> None:
        async with self._session_context() as session:
            model = await session.get(TicketModel, ticket_id)
            if model is None:
                return
            model.team_id = str(team_id)
            model.assignee_id = assignee_id
            model.updated_at = datetime.now(timezone.utc)

    async def list_comments(self, ticket_id: str) -> List[TicketComment]:
        stmt = (
            select(TicketCommentModel)
            .where(TicketCommentModel.ticket_id == ticket_id)
            .order_by(TicketCommentModel.created_at)
        )
        async with self._session_context() as session:
            result = await session.execute(stmt)
            return [_comment(m) for m in result.scalars().all()]

    async def add_comment(self, ticket_id: str, author_id: str, content: str) -> TicketComment:
        model = TicketCommentModel(
            ticket_id=ticket_id,
            author_id=author_id,
            content=content,
            created_at=datetime.now(timezone.utc),
        )
        async with self._session_context() as session:
            session.add(model)
            await session.flush()
            return _comment(model)


class SQLAlchemyKnowledgeArticleRepository(IKnowledgeArticleRepository):
    """SQLAlchemy implementation for knowledge articles."""

    def __init__(self, session_context: SessionContextFactory):
        self._session_context = session_context

    async def get_by_id(self, article_id: str) -> Optional[KnowledgeArticle]:
        async with self._session_context() as session:
            model = await session.get(KnowledgeArticleModel, article_id)
            return _article(model) if model else None

    async def list_published(self) -> List[KnowledgeArticle]:
        stmt = (
            select(KnowledgeArticleModel)
            .where(KnowledgeArticleModel.status == ArticleStatus.PUBLISHED)
            .order_by(KnowledgeArticleModel.created_at)
        )
        async with self._session_context() as session:
            result = await session.execute(stmt)
            return [_article(m) for m in result.scalars().all()]

    async def list_titles(self) -> List[str]:
        async with self._session_context() as session:
            result = await session.execute(select(KnowledgeArticleModel.title))
            return list(result.scalars().all())

    async def search(self, terms: Sequence[str], limit: int) -> List[KnowledgeArticle]:
        if not terms:
            return []
        conditions = []
        for term in terms:
            pattern = f"%{term}%"
            conditions.append(KnowledgeArticleModel.title.ilike(pattern))
            conditions.append(KnowledgeArticleModel.content.ilike(pattern))
        stmt = (
            select(KnowledgeArticleModel)
            .where(KnowledgeArticleModel.status == ArticleStatus.PUBLISHED, or_(*conditions))
            .limit(limit)
        )
        async with self._session_context() as session:
            result = await session.execute(stmt)
            return [_article(m) for m in result.scalars().all()]

    async def create(self, article: KnowledgeArticle) -> KnowledgeArticle:
        model = KnowledgeArticleModel(
            title=article.title,
            content=article.content,
            category=article.category,
            status=article.status,
            tags=list(article.tags),
            difficulty=article.difficulty,
            estimated_read_time=article.estimated_read_time,
            related_ticket_ids=list(article.related_ticket_ids),
            confidence=article.confidence,
            created_by=article.created_by,
            source=article.source,
            created_at=datetime.now(timezone.utc),
        )
        async with self._session_context() as session:
            session.add(model)
            await session.flush()
            return _article(model)

    async def update_content(self, article_id: str, content: str) -> Optional[KnowledgeArticle]:
        async with self._session_context() as session:
            model = await session.get(KnowledgeArticleModel, article_id)
            if model is None:
                return None
            model.content = content
            model.updated_at = datetime.now(timezone.utc)
            await session.flush()
            return _article(model)

    async def set_status(self, article_id: str, status: str) -> Optional[KnowledgeArticle]:
        async with self._session_context() as session:
            model = await session.get(KnowledgeArticleModel, article_id)
            if model is None:
                return None
            model.status = status
            model.updated_at = datetime.now(timezone.utc)
            await session.flush()
            return _article(model)
