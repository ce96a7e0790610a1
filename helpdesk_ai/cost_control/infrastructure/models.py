"""
Cost Control Infrastructure Models
==================================

SQLAlchemy ORM models for the usage ledger and the cost limits row.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk_ai.infrastructure.database import Base


class UsageRecordModel(Base):
    """
    Database model for UsageRecord entity.

    Rows are inserted and deleted, never updated.
    """
    __tablename__ = "ai_usage_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    model_id: Mapped[str] = mapped_column(String(200), nullable=False)
    input_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    output_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    estimated_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    operation: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    user_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    ticket_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


class CostLimitsModel(Base):
    """
    Database model for CostLimits.

    Singleton: the repository only ever reads and writes ``id == 1``.
    """
    __tablename__ = "ai_cost_limits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    daily_limit_usd: Mapped[float] = mapped_column(Float, nullable=False)
    monthly_limit_usd: Mapped[float] = mapped_column(Float, nullable=False)
    max_tokens_per_request: Mapped[int] = mapped_column(Integer, nullable=False)
    max_requests_per_day: Mapped[int] = mapped_column(Integer, nullable=False)
    max_requests_per_hour: Mapped[int] = mapped_column(Integer, nullable=False)
    is_free_tier_account: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
