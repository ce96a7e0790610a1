"""
Ticket Domain Entities
======================

The slice of the ticketing system the AI core reads and writes: tickets,
their comments and knowledge articles. Ticket CRUD itself belongs to the
surrounding application.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from helpdesk_ai.config import ArticleStatus, TicketStatus


@dataclass
class Ticket:
    id: str
    title: str
    description: str
    category: str
    priority: str
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    notes: Optional[str] = None
    team_id: Optional[str] = None
    assignee_id: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.status in (TicketStatus.RESOLVED, TicketStatus.CLOSED)

    @property
    def resolution_hours(self) -> Optional[float]:
        """Hours from creation to resolution, None when unknown."""
        end = self.resolved_at or (self.updated_at if self.is_resolved else None)
        if end is None:
            return None
        return (end - self.created_at).total_seconds() / 3600


@dataclass
class TicketComment:
    ticket_id: str
    author_id: str
    content: str
    created_at: datetime
    id: Optional[str] = None


@dataclass
class KnowledgeArticle:
    """A knowledge base entry as stored by the ticketing system."""
    title: str
    content: str
    category: str
    status: str = ArticleStatus.DRAFT
    tags: List[str] = field(default_factory=list)
    difficulty: Optional[str] = None
    estimated_read_time: Optional[int] = None
    related_ticket_ids: List[str] = field(default_factory=list)
    confidence: Optional[int] = None
    created_by: Optional[str] = None
    source: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_published(self) -> bool:
        return self.status == ArticleStatus.PUBLISHED

    def snippet(self, length: int = 500) -> str:
        """Knowledge context line used in prompts."""
        return f"{self.title}: {self.content[:length]}"
