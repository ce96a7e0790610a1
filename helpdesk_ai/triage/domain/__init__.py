"""
Triage Domain Layer
===================

Pure business objects and rules for ticket triage.
"""

from helpdesk_ai.triage.domain.entities import (
    TicketAnalysis,
    AutoResponse,
    ComplexityScore,
    AutoResponseRecord,
    AIAnalyticsRecord,
    KnowledgeMatch,
    StageOutcome,
    TriageResult,
)
from helpdesk_ai.triage.domain.scoring import (
    complexity_score,
    complexity_factors,
    should_escalate,
)
from helpdesk_ai.triage.domain.prompts import (
    TicketAnalysisPromptBuilder,
    AutoResponsePromptBuilder,
    KnowledgeRankingPromptBuilder,
)

__all__ = [
    "TicketAnalysis",
    "AutoResponse",
    "ComplexityScore",
    "AutoResponseRecord",
    "AIAnalyticsRecord",
    "KnowledgeMatch",
    "StageOutcome",
    "TriageResult",
    "complexity_score",
    "complexity_factors",
    "should_escalate",
    "TicketAnalysisPromptBuilder",
    "AutoResponsePromptBuilder",
    "KnowledgeRankingPromptBuilder",
]
