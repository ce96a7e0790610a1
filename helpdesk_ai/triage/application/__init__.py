"""
Triage Application Layer
========================

TriageEngine, knowledge search and the triage repository interfaces.
"""

from helpdesk_ai.triage.application.services import (
    IComplexityScoreRepository,
    IAutoResponseRepository,
    IAIAnalyticsRepository,
    TriageEngine,
)
from helpdesk_ai.triage.application.knowledge_search import KnowledgeSearchService, search_terms
from helpdesk_ai.triage.application.dto import (
    TicketAnalysisPayload,
    AutoResponsePayload,
    ArticleRankingPayload,
    TriageResultResponse,
    ComplexityScoreResponse,
)

__all__ = [
    "IComplexityScoreRepository",
    "IAutoResponseRepository",
    "IAIAnalyticsRepository",
    "TriageEngine",
    "KnowledgeSearchService",
    "search_terms",
    "TicketAnalysisPayload",
    "AutoResponsePayload",
    "ArticleRankingPayload",
    "TriageResultResponse",
    "ComplexityScoreResponse",
]
