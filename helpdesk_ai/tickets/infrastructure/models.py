"""
Ticket Infrastructure Models
============================

SQLAlchemy ORM models for the ticket tables the AI core touches.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk_ai.config import ArticleStatus
from helpdesk_ai.infrastructure.database import Base


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketModel(Base):
    """Database model for Ticket entity."""
    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="support")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="open", index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    team_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    assignee_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)


class TicketCommentModel(Base):
    """Database model for TicketComment entity."""
    __tablename__ = "ticket_comments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    ticket_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class KnowledgeArticleModel(Base):
    """Database model for KnowledgeArticle entity."""
    __tablename__ = "knowledge_articles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ArticleStatus.DRAFT, index=True)

    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    difficulty: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    estimated_read_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    related_ticket_ids: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    confidence: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
