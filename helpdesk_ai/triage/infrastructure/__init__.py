"""
Triage Infrastructure Layer
===========================

SQLAlchemy repositories for complexity scores, auto-responses and analytics.
"""

from helpdesk_ai.triage.infrastructure.repositories import (
    SQLAlchemyComplexityScoreRepository,
    SQLAlchemyAutoResponseRepository,
    SQLAlchemyAIAnalyticsRepository,
)

__all__ = [
    "SQLAlchemyComplexityScoreRepository",
    "SQLAlchemyAutoResponseRepository",
    "SQLAlchemyAIAnalyticsRepository",
]
