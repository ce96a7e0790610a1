"""
Learning Domain Entities
========================

Business objects for the learning queue and knowledge mining.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from helpdesk_ai.config import AI_LEARNING_ID, ArticleStatus, QueueStatus
from helpdesk_ai.tickets.domain import KnowledgeArticle

AI_GENERATED_SOURCE = "ai_generated"


@dataclass
class LearningQueueItem:
    """
    A resolved ticket waiting to be mined.

    pending -> processing -> completed | failed
    """
    ticket_id: str
    status: str = QueueStatus.PENDING
    processing_attempts: int = 0
    processed_at: Optional[datetime] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status in (QueueStatus.PENDING, QueueStatus.PROCESSING)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry for failed queue items.

    A failed item may go back to pending only while it has fewer than
    ``max_attempts`` attempts and ``base_delay * 2 ** (attempts - 1)`` has
    passed since it failed.
    """
    max_attempts: int = 3
    base_delay: timedelta = timedelta(minutes=15)

    def backoff(self, attempts: int) -> timedelta:
        return self.base_delay * (2 ** max(0, attempts - 1))

    def can_retry(self, item: LearningQueueItem, now: datetime) -> bool:
        if item.status != QueueStatus.FAILED:
            return False
        if item.processing_attempts >= self.max_attempts:
            return False
        failed_at = item.updated_at or item.created_at
        if failed_at is None:
            return True
        return now - failed_at >= self.backoff(item.processing_attempts)


@dataclass
class EnrichedTicket:
    """A resolved ticket with its resolution text, ready for pattern mining."""
    id: str
    title: str
    description: str
    category: str
    priority: str
    resolution: str
    resolution_time: int  # hours
    comments: List[str] = field(default_factory=list)

    def summary(self) -> str:
        """Block of text describing this ticket in the pattern prompt."""
        return (
            f"Ticket {self.id}:\n"
            f"Title: {self.title}\n"
            f"Category: {self.category}\n"
            f"Priority: {self.priority}\n"
            f"Problem: {self.description}\n"
            f"Resolution: {self.resolution}\n"
            f"Time to resolve: {self.resolution_time} hours\n"
            f"Comments: {'; '.join(self.comments)}\n"
            f"---"
        )


@dataclass
class ResolutionPattern:
    problem_type: str
    common_solutions: List[str]
    preventive_measures: List[str]
    frequency: int
    average_resolution_time: float
    success_rate: int  # 0-100

    MIN_FREQUENCY = 3
    MIN_SUCCESS_RATE = 70

    @property
    def is_significant(self) -> bool:
        """Worth an article: recurring and reliably solved."""
        return self.frequency >= self.MIN_FREQUENCY and self.success_rate >= self.MIN_SUCCESS_RATE


@dataclass
class DraftKnowledgeArticle:
    """An article synthesized from a pattern. Always stored as a draft."""
    title: str
    content: str
    category: str
    tags: List[str] = field(default_factory=list)
    difficulty: Optional[str] = None
    estimated_read_time: Optional[int] = None
    related_ticket_ids: List[str] = field(default_factory=list)
    confidence: int = 0
    status: str = field(default=ArticleStatus.DRAFT, init=False)

    def to_article(self) -> KnowledgeArticle:
        return KnowledgeArticle(
            title=self.title,
            content=self.content,
            category=self.category,
            status=ArticleStatus.DRAFT,
            tags=list(self.tags),
            difficulty=self.difficulty,
            estimated_read_time=self.estimated_read_time,
            related_ticket_ids=list(self.related_ticket_ids),
            confidence=self.confidence,
            created_by=AI_LEARNING_ID,
            source=AI_GENERATED_SOURCE,
        )


@dataclass
class ArticleImprovement:
    should_update: bool
    improved_content: str
    improvement_reason: str
    confidence: int

    MIN_CONFIDENCE = 70

    @property
    def applicable(self) -> bool:
        return self.should_update and bool(self.improved_content) and self.confidence >= self.MIN_CONFIDENCE


@dataclass
class MiningStats:
    """Outcome of one mining run."""
    tickets_analyzed: int = 0
    patterns_found: int = 0
    articles_created: int = 0
    articles_published: int = 0
    run_at: Optional[datetime] = None
    skipped_reason: Optional[str] = None
    id: Optional[int] = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tickets_analyzed": self.tickets_analyzed,
            "patterns_found": self.patterns_found,
            "articles_created": self.articles_created,
            "articles_published": self.articles_published,
            "run_at": self.run_at.isoformat() if self.run_at else None,
            "skipped_reason": self.skipped_reason,
        }
