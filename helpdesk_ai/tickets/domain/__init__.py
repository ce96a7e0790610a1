"""
Ticket Domain Layer
===================

Tickets, comments and knowledge articles as seen by the AI core.
"""

from helpdesk_ai.tickets.domain.entities import KnowledgeArticle, Ticket, TicketComment

__all__ = ["Ticket", "TicketComment", "KnowledgeArticle"]
