"""
Ticket Collaborator Interfaces
==============================

Repository interfaces through which the AI core reaches the ticketing
system. The core never owns ticket or article storage; any store that
satisfies these contracts can be wired in.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

from helpdesk_ai.tickets.domain import KnowledgeArticle, Ticket, TicketComment


class ITicketRepository(ABC):
    """Interface for ticket and comment access."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID."""

    @abstractmethod
    async def get_many(self, ticket_ids: Sequence[str]) -> List[Ticket]:
        """Get the tickets that exist among ``ticket_ids``."""

    @abstractmethod
    async def list_resolved_between(self, start: datetime, end: datetime) -> List[Ticket]:
        """Resolved tickets whose resolution falls in ``[start, end)``."""

    @abstractmethod
    async def assign_to_team(self, ticket_id: str, team_id: str, assignee_id: Optional[str]) -> None:
        """Reassign a ticket to a team."""

    @abstractmethod
    async def list_comments(self, ticket_id: str) -> List[TicketComment]:
        """Comments of a ticket, oldest first."""

    @abstractmethod
    async def add_comment(self, ticket_id: str, author_id: str, content: str) -> TicketComment:
        """Post a comment on a ticket."""


class IKnowledgeArticleRepository(ABC):
    """Interface for knowledge article access."""

    @abstractmethod
    async def get_by_id(self, article_id: str) -> Optional[KnowledgeArticle]:
        """Get article by ID."""

    @abstractmethod
    async def list_published(self) -> List[KnowledgeArticle]:
        """All published articles."""

    @abstractmethod
    async def list_titles(self) -> List[str]:
        """Titles of every article, drafts included."""

    @abstractmethod
    async def search(self, terms: Sequence[str], limit: int) -> List[KnowledgeArticle]:
        """Published articles whose title or content contains any of ``terms``."""

    @abstractmethod
    async def create(self, article: KnowledgeArticle) -> KnowledgeArticle:
        """Insert an article; returns it with its id set."""

    @abstractmethod
    async def update_content(self, article_id: str, content: str) -> Optional[KnowledgeArticle]:
        """Replace an article's content."""

    @abstractmethod
    async def set_status(self, article_id: str, status: str) -> Optional[KnowledgeArticle]:
        """Change publication status."""


__all__ = ["ITicketRepository", "IKnowledgeArticleRepository"]
