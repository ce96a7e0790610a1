"""
Triage Domain Entities
======================

Domain entities for the ticket triage module.

Contains pure Python business objects for ticket analysis, auto-response
drafting and escalation decisions.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from helpdesk_ai.config import Complexity

T = TypeVar("T")


@dataclass
class TicketAnalysis:
    """
    Result of ticket analysis.

    Confidence is on the 0-100 scale.
    """
    complexity: str
    category: str
    priority: str
    estimated_resolution_time: float  # hours
    confidence: int
    tags: List[str] = field(default_factory=list)
    reasoning: str = ""

    @classmethod
    def fallback(cls, category: str, priority: str) -> "TicketAnalysis":
        """Safe default used when the model call or its payload fails."""
        return cls(
            complexity=Complexity.MEDIUM,
            category=category,
            priority=priority,
            estimated_resolution_time=0,
            confidence=0,
            reasoning="Analysis unavailable",
        )


@dataclass
class AutoResponse:
    """Draft reply to a ticket, grounded on knowledge snippets."""
    response: str
    confidence: int
    knowledge_base_articles: List[str] = field(default_factory=list)
    follow_up_actions: List[str] = field(default_factory=list)
    escalation_needed: bool = False

    @classmethod
    def fallback(cls) -> "AutoResponse":
        return cls(response="", confidence=0, escalation_needed=True)


@dataclass
class ComplexityScore:
    """Persisted complexity score; one row per ticket."""
    ticket_id: str
    score: int
    factors: Dict[str, Any]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class AutoResponseRecord:
    """An auto-response that was posted to a ticket."""
    ticket_id: str
    response: str
    confidence: int
    applied: bool
    knowledge_base_articles: List[str] = field(default_factory=list)
    follow_up_actions: List[str] = field(default_factory=list)
    id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass
class AIAnalyticsRecord:
    """One row of triage analytics."""
    ticket_id: str
    analysis_performed: bool
    response_generated: bool
    response_applied: bool
    confidence: int
    complexity: int
    id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass
class KnowledgeMatch:
    """An article ranked against a ticket."""
    article_id: Optional[str]
    title: str
    snippet: str
    relevance_score: int
    matched_content: str = ""


@dataclass
class StageOutcome(Generic[T]):
    """
    Tagged result of one pipeline stage.

    ``value`` always holds something usable: the stage result on success,
    the documented default on failure.
    """
    ok: bool
    value: T
    error: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "StageOutcome[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, default: T, error: str) -> "StageOutcome[T]":
        return cls(ok=False, value=default, error=error)


@dataclass
class TriageResult:
    """Structured outcome of one triage run."""
    ticket_id: str
    ai_enabled: bool = True
    analysis: Optional[TicketAnalysis] = None
    auto_response: Optional[AutoResponse] = None
    knowledge_snippets: List[str] = field(default_factory=list)
    complexity_score: int = 0
    should_escalate: bool = False
    response_applied: bool = False
    escalated_to_team: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        """True when any stage fell back to its default."""
        return bool(self.errors)
