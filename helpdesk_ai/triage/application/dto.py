"""
Triage Application DTOs
=======================

Pydantic models for model payloads and the triage API.

Model payloads use the camelCase keys the prompts ask for; confidences are
normalised to 0-100 while validating.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from helpdesk_ai.config import VALID_CATEGORIES, VALID_COMPLEXITIES, VALID_PRIORITIES
from helpdesk_ai.infrastructure.llm import normalize_confidence
from helpdesk_ai.tickets.domain import Ticket
from helpdesk_ai.triage.domain import AutoResponse, TicketAnalysis, TriageResult


# ========== Model Payloads ==========

class TicketAnalysisPayload(BaseModel):
    """Schema of the ticket analysis reply."""
    model_config = ConfigDict(populate_by_name=True)

    complexity: str
    category: Optional[str] = None
    priority: Optional[str] = None
    estimated_resolution_time: float = Field(0, ge=0, alias="estimatedResolutionTime")
    tags: List[str] = Field(default_factory=list)
    confidence: int
    reasoning: str = ""

    @field_validator("complexity")
    @classmethod
    def validate_complexity(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in VALID_COMPLEXITIES:
            raise ValueError(f"Unknown complexity: {v}")
        return v

    @field_validator("category", "priority")
    @classmethod
    def lowercase(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("confidence", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> int:
        return normalize_confidence(v)

    def to_domain(self, ticket: Ticket) -> TicketAnalysis:
        """Unknown category or priority keep the ticket's own value."""
        return TicketAnalysis(
            complexity=self.complexity,
            category=self.category if self.category in VALID_CATEGORIES else ticket.category,
            priority=self.priority if self.priority in VALID_PRIORITIES else ticket.priority,
            estimated_resolution_time=self.estimated_resolution_time,
            confidence=self.confidence,
            tags=[str(t) for t in self.tags],
            reasoning=self.reasoning,
        )


class AutoResponsePayload(BaseModel):
    """Schema of the auto-response reply."""
    model_config = ConfigDict(populate_by_name=True)

    response: str = Field(..., min_length=1)
    confidence: int
    knowledge_base_articles: List[str] = Field(default_factory=list, alias="knowledgeBaseArticles")
    follow_up_actions: List[str] = Field(default_factory=list, alias="followUpActions")
    escalation_needed: bool = Field(False, alias="escalationNeeded")

    @field_validator("confidence", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> int:
        return normalize_confidence(v)

    @field_validator("knowledge_base_articles", "follow_up_actions", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> List[str]:
        if v is None:
            return []
        return [str(item) for item in v]

    def to_domain(self) -> AutoResponse:
        return AutoResponse(
            response=self.response,
            confidence=self.confidence,
            knowledge_base_articles=self.knowledge_base_articles,
            follow_up_actions=self.follow_up_actions,
            escalation_needed=self.escalation_needed,
        )


class ArticleRankingPayload(BaseModel):
    """One entry of the knowledge ranking reply."""
    model_config = ConfigDict(populate_by_name=True)

    article_index: int = Field(..., ge=0, alias="articleIndex")
    relevance_score: int = Field(..., alias="relevanceScore")
    matched_content: str = Field("", alias="matchedContent")

    @field_validator("relevance_score", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> int:
        return normalize_confidence(v)


# ========== Response DTOs ==========

class TicketAnalysisInfo(BaseModel):
    complexity: str
    category: str
    priority: str
    estimated_resolution_time: float
    tags: List[str]
    confidence: int
    reasoning: str


class AutoResponseInfo(BaseModel):
    response: str
    confidence: int
    knowledge_base_articles: List[str]
    follow_up_actions: List[str]
    escalation_needed: bool


class TriageResultResponse(BaseModel):
    """Response model for a triage run."""
    ticket_id: str
    ai_enabled: bool
    analysis: Optional[TicketAnalysisInfo] = None
    auto_response: Optional[AutoResponseInfo] = None
    knowledge_snippets: List[str] = Field(default_factory=list)
    complexity_score: int
    should_escalate: bool
    response_applied: bool
    escalated_to_team: Optional[str] = None
    errors: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, result: TriageResult) -> "TriageResultResponse":
        analysis = result.analysis
        response = result.auto_response
        return cls(
            ticket_id=result.ticket_id,
            ai_enabled=result.ai_enabled,
            analysis=TicketAnalysisInfo(**vars(analysis)) if analysis else None,
            auto_response=AutoResponseInfo(**vars(response)) if response else None,
            knowledge_snippets=result.knowledge_snippets,
            complexity_score=result.complexity_score,
            should_escalate=result.should_escalate,
            response_applied=result.response_applied,
            escalated_to_team=result.escalated_to_team,
            errors=result.errors,
        )


class ComplexityScoreResponse(BaseModel):
    ticket_id: str
    score: int
    factors: Dict[str, Any]
