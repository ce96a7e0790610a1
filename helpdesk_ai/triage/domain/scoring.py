"""
Complexity scoring and escalation rules.

Both functions are pure: the same analysis always yields the same answer.
"""

from typing import Dict

from helpdesk_ai.config import Complexity, Priority
from helpdesk_ai.triage.domain.entities import AutoResponse, TicketAnalysis

COMPLEXITY_BASE: Dict[str, int] = {
    Complexity.LOW: 10,
    Complexity.MEDIUM: 30,
    Complexity.HIGH: 60,
    Complexity.CRITICAL: 90,
}

PRIORITY_WEIGHT: Dict[str, int] = {
    Priority.LOW: 5,
    Priority.MEDIUM: 15,
    Priority.HIGH: 25,
    Priority.URGENT: 40,
}

LOW_CONFIDENCE = 50
ESCALATION_HOURS = 48


def complexity_score(analysis: TicketAnalysis) -> int:
    """
    Score ticket complexity on [0, 100].

    base(complexity) + weight(priority) + time bonus + low-confidence penalty.
    Unknown complexity or priority values contribute nothing.
    """
    score = COMPLEXITY_BASE.get(analysis.complexity, 0)
    score += PRIORITY_WEIGHT.get(analysis.priority, 0)

    hours = analysis.estimated_resolution_time or 0
    if hours > 24:
        score += 20
    elif hours > 8:
        score += 10

    if analysis.confidence < 50:
        score += 15
    elif analysis.confidence < 70:
        score += 10

    return max(0, min(100, int(score)))


def complexity_factors(analysis: TicketAnalysis) -> Dict[str, object]:
    """Inputs of the score, persisted next to it."""
    return {
        "complexity": analysis.complexity,
        "priority": analysis.priority,
        "estimated_time": analysis.estimated_resolution_time,
        "confidence": analysis.confidence,
    }


def should_escalate(analysis: TicketAnalysis, response: AutoResponse) -> bool:
    """Any single rule is enough to hand the ticket to a human."""
    return (
        analysis.complexity == Complexity.CRITICAL
        or analysis.priority == Priority.URGENT
        or analysis.confidence < LOW_CONFIDENCE
        or response.confidence < LOW_CONFIDENCE
        or (analysis.estimated_resolution_time or 0) > ESCALATION_HOURS
        or response.escalation_needed
    )
