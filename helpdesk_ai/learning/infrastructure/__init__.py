"""
Learning Infrastructure Layer
=============================

SQLAlchemy repositories for the learning queue and run statistics.
"""

from helpdesk_ai.learning.infrastructure.repositories import (
    SQLAlchemyLearningQueueRepository,
    SQLAlchemyLearningRunRepository,
)

__all__ = ["SQLAlchemyLearningQueueRepository", "SQLAlchemyLearningRunRepository"]
