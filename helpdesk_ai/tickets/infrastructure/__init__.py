"""
Ticket Infrastructure Layer
===========================

SQLAlchemy adapter for the ticket collaborator interfaces.
"""

from helpdesk_ai.tickets.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    SQLAlchemyKnowledgeArticleRepository,
)

__all__ = ["SQLAlchemyTicketRepository", "SQLAlchemyKnowledgeArticleRepository"]
