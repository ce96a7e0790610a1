"""
Learning Infrastructure Models
==============================

SQLAlchemy ORM models for the learning queue and mining run statistics.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk_ai.config import QueueStatus
from helpdesk_ai.infrastructure.database import Base


class LearningQueueItemModel(Base):
    """Database model for LearningQueueItem entity."""
    __tablename__ = "learning_queue"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=QueueStatus.PENDING, index=True)
    processing_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class LearningRunModel(Base):
    """Statistics of one knowledge mining run."""
    __tablename__ = "learning_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tickets_analyzed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    patterns_found: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    articles_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    articles_published: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    run_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        default=lambda: datetime.now(timezone.utc)
    )
