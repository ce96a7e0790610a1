"""
Triage Controllers (API Routes)
===============================

FastAPI routes for ticket triage endpoints.

Controllers delegate to the TriageEngine held in app state.
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from helpdesk_ai.shared.infrastructure.logging import get_logger
from helpdesk_ai.triage.application import (
    ComplexityScoreResponse,
    TriageEngine,
    TriageResultResponse,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/triage", tags=["Ticket Triage"])


# ========== Example payloads for Swagger ==========

TRIAGE_RESPONSE_EXAMPLE = {
    "ticket_id": "1042",
    "ai_enabled": True,
    "analysis": {
        "complexity": "medium",
        "category": "bug",
        "priority": "high",
        "estimated_resolution_time": 6,
        "tags": ["login", "sso"],
        "confidence": 82,
        "reasoning": "SSO login failure for a single tenant after a certificate rotation."
    },
    "auto_response": {
        "response": "Thanks for reporting this. Please clear cached credentials and retry...",
        "confidence": 78,
        "knowledge_base_articles": ["Resetting SSO sessions"],
        "follow_up_actions": ["Verify IdP certificate"],
        "escalation_needed": False
    },
    "knowledge_snippets": ["Resetting SSO sessions: When users cannot sign in..."],
    "complexity_score": 40,
    "should_escalate": False,
    "response_applied": True,
    "escalated_to_team": None,
    "errors": {}
}


# ========== Dependencies ==========

def get_triage_engine(request: Request) -> TriageEngine:
    """Get the triage engine from app state."""
    engine = getattr(request.app.state, "triage_engine", None)
    if engine is None:
        raise HTTPException(
            status_code=503,
            detail="Triage engine not available - database not initialized"
        )
    return engine


# ========== Route Handlers ==========

@router.post(
    "/tickets/{ticket_id}/process",
    response_model=TriageResultResponse,
    summary="Triage a ticket",
    description="""
    Run AI triage for a created or updated ticket:

    1. Analyze complexity, category and priority
    2. Look up relevant knowledge base articles
    3. Draft an auto-response
    4. Score complexity and decide escalation
    5. Post the response when confidence allows, reassign on escalation

    Model failures never fail the request; degraded stages are listed in `errors`.
    When no model is configured the result has `ai_enabled=false`.
    """,
    responses={
        200: {
            "description": "Ticket triaged",
            "content": {"application/json": {"example": TRIAGE_RESPONSE_EXAMPLE}}
        },
        404: {"description": "Ticket not found"},
        503: {"description": "Triage engine not available"}
    }
)
async def process_ticket(
    ticket_id: str,
    request: Request,
    engine: TriageEngine = Depends(get_triage_engine)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    logger.info("Triaging ticket", extra={"correlation_id": correlation_id, "ticket_id": ticket_id})

    result = await engine.process(ticket_id)
    return TriageResultResponse.from_domain(result)


@router.get(
    "/tickets/{ticket_id}/complexity",
    response_model=ComplexityScoreResponse,
    summary="Get the stored complexity score of a ticket",
    responses={404: {"description": "Ticket has not been triaged"}}
)
async def get_complexity(
    ticket_id: str,
    engine: TriageEngine = Depends(get_triage_engine)
):
    score = await engine.get_complexity(ticket_id)
    return ComplexityScoreResponse(ticket_id=score.ticket_id, score=score.score, factors=score.factors)
