"""
Learning Application DTOs
=========================

Pydantic models for mining payloads and the learning API.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from helpdesk_ai.infrastructure.llm import normalize_confidence
from helpdesk_ai.learning.domain import (
    ArticleImprovement,
    DraftKnowledgeArticle,
    LearningQueueItem,
    MiningStats,
    ResolutionPattern,
)
from helpdesk_ai.tickets.domain import KnowledgeArticle


def _string_list(v: Any) -> List[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return [v]
    if not isinstance(v, (list, tuple)):
        raise ValueError("expected a list of strings")
    return [str(item) for item in v]


# ========== Model Payloads ==========

class ResolutionPatternPayload(BaseModel):
    """One entry of the pattern analysis reply."""
    model_config = ConfigDict(populate_by_name=True)

    problem_type: str = Field(..., min_length=1, alias="problemType")
    common_solutions: List[str] = Field(default_factory=list, alias="commonSolutions")
    preventive_measures: List[str] = Field(default_factory=list, alias="preventiveMeasures")
    frequency: int = Field(..., ge=0)
    average_resolution_time: float = Field(0, ge=0, alias="averageResolutionTime")
    success_rate: int = Field(..., alias="successRate")

    @field_validator("common_solutions", "preventive_measures", mode="before")
    @classmethod
    def as_strings(cls, v: Any) -> List[str]:
        return _string_list(v)

    @field_validator("success_rate", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> int:
        return normalize_confidence(v)

    def to_domain(self) -> ResolutionPattern:
        return ResolutionPattern(
            problem_type=self.problem_type,
            common_solutions=self.common_solutions,
            preventive_measures=self.preventive_measures,
            frequency=self.frequency,
            average_resolution_time=self.average_resolution_time,
            success_rate=self.success_rate,
        )


class KnowledgeArticlePayload(BaseModel):
    """Schema of the article synthesis reply. Any status the model suggests is ignored."""
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    tags: List[str] = Field(default_factory=list)
    difficulty: Optional[str] = None
    estimated_read_time: Optional[int] = Field(None, ge=0, alias="estimatedReadTime")
    confidence: int = 0

    @field_validator("tags", mode="before")
    @classmethod
    def as_strings(cls, v: Any) -> List[str]:
        return _string_list(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> int:
        return normalize_confidence(v)

    def to_draft(self, category: str, related_ticket_ids: List[str]) -> DraftKnowledgeArticle:
        return DraftKnowledgeArticle(
            title=self.title.strip(),
            content=self.content,
            category=category,
            tags=self.tags,
            difficulty=self.difficulty,
            estimated_read_time=self.estimated_read_time,
            related_ticket_ids=list(related_ticket_ids),
            confidence=self.confidence,
        )


class ArticleImprovementPayload(BaseModel):
    """Schema of the article improvement reply."""
    model_config = ConfigDict(populate_by_name=True)

    should_update: bool = Field(..., alias="shouldUpdate")
    improved_content: str = Field("", alias="improvedContent")
    improvement_reason: str = Field("", alias="improvementReason")
    confidence: int = 0

    @field_validator("confidence", mode="before")
    @classmethod
    def normalize(cls, v: Any) -> int:
        return normalize_confidence(v)

    def to_domain(self) -> ArticleImprovement:
        return ArticleImprovement(
            should_update=self.should_update,
            improved_content=self.improved_content,
            improvement_reason=self.improvement_reason,
            confidence=self.confidence,
        )


# ========== Request DTOs ==========

class LearningRunRequest(BaseModel):
    """Request model for a manual mining run."""
    from_queue: bool = Field(False, description="Mine the pending learning queue instead of a time window")
    window_start: Optional[datetime] = Field(None, description="Start of the resolution window (UTC)")
    window_end: Optional[datetime] = Field(None, description="End of the resolution window (UTC)")


class ArticleImprovementRequest(BaseModel):
    """New resolution data for an existing article."""
    resolution: str = Field(..., min_length=1)
    resolution_time: float = Field(..., ge=0, description="Hours taken")
    success: bool = True


# ========== Response DTOs ==========

class LearningQueueItemResponse(BaseModel):
    id: Optional[int]
    ticket_id: str
    status: str
    processing_attempts: int
    processed_at: Optional[datetime] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, item: LearningQueueItem) -> "LearningQueueItemResponse":
        return cls(
            id=item.id,
            ticket_id=item.ticket_id,
            status=item.status,
            processing_attempts=item.processing_attempts,
            processed_at=item.processed_at,
            error=item.error,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class RequeueResponse(BaseModel):
    requeued: List[LearningQueueItemResponse]


class MiningStatsResponse(BaseModel):
    tickets_analyzed: int
    patterns_found: int
    articles_created: int
    articles_published: int
    run_at: Optional[datetime] = None
    skipped_reason: Optional[str] = None

    @classmethod
    def from_domain(cls, stats: MiningStats) -> "MiningStatsResponse":
        return cls(
            tickets_analyzed=stats.tickets_analyzed,
            patterns_found=stats.patterns_found,
            articles_created=stats.articles_created,
            articles_published=stats.articles_published,
            run_at=stats.run_at,
            skipped_reason=stats.skipped_reason,
        )


class KnowledgeArticleResponse(BaseModel):
    id: Optional[str]
    title: str
    category: str
    status: str
    tags: List[str]
    confidence: Optional[int] = None
    created_by: Optional[str] = None
    source: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, article: KnowledgeArticle) -> "KnowledgeArticleResponse":
        return cls(
            id=article.id,
            title=article.title,
            category=article.category,
            status=article.status,
            tags=list(article.tags),
            confidence=article.confidence,
            created_by=article.created_by,
            source=article.source,
            updated_at=article.updated_at,
        )


class ArticleImprovementResponse(BaseModel):
    article_id: str
    updated: bool
