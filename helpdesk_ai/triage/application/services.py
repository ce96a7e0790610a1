"""
Triage Application Services
===========================

Application services for ticket triage.

TriageEngine runs one ticket through explicit stages:

    analyze -> knowledge search -> auto-response -> score and escalation
            -> apply gate -> escalation settings -> persist

Each model stage yields a StageOutcome; a failed stage substitutes its
documented default and the run continues. ``process`` only ends early when
no model is configured.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from helpdesk_ai.config import AI_ASSISTANT_ID
from helpdesk_ai.config.ai_settings import AISettings
from helpdesk_ai.core import (
    ConfigurationException,
    ResourceNotFoundException,
    error_message,
)
from helpdesk_ai.infrastructure.llm import ModelGateway, parse_model_payload
from helpdesk_ai.shared.infrastructure.logging import get_logger
from helpdesk_ai.tickets.application import ITicketRepository
from helpdesk_ai.tickets.domain import Ticket
from helpdesk_ai.triage.application.dto import AutoResponsePayload, TicketAnalysisPayload
from helpdesk_ai.triage.application.knowledge_search import KnowledgeSearchService
from helpdesk_ai.triage.domain import (
    AIAnalyticsRecord,
    AutoResponse,
    AutoResponsePromptBuilder,
    AutoResponseRecord,
    ComplexityScore,
    StageOutcome,
    TicketAnalysis,
    TicketAnalysisPromptBuilder,
    TriageResult,
    complexity_factors,
    complexity_score,
    should_escalate,
)

logger = get_logger(__name__)


# ========== Repository Interfaces ==========

class IComplexityScoreRepository(ABC):
    """Interface for complexity score storage."""

    @abstractmethod
    async def upsert(self, score: ComplexityScore) -> ComplexityScore:
        """Insert or replace the score of a ticket."""

    @abstractmethod
    async def get_by_ticket(self, ticket_id: str) -> Optional[ComplexityScore]:
        """Get the score of a ticket."""


class IAutoResponseRepository(ABC):
    """Interface for applied auto-response storage."""

    @abstractmethod
    async def create(self, record: AutoResponseRecord) -> AutoResponseRecord:
        """Store an auto-response."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[AutoResponseRecord]:
        """Auto-responses of a ticket, oldest first."""


class IAIAnalyticsRepository(ABC):
    """Interface for triage analytics storage."""

    @abstractmethod
    async def create(self, record: AIAnalyticsRecord) -> AIAnalyticsRecord:
        """Store an analytics row."""


# ========== Application Services ==========

class TriageEngine:
    """
    Confidence-gated triage of a single ticket.

    Coordinates the model gateway, knowledge search and the ticket store.
    """

    ANALYSIS_TOKEN_CAP = 1000
    RESPONSE_TOKEN_CAP = 1500

    def __init__(
        self,
        gateway: ModelGateway,
        tickets: ITicketRepository,
        knowledge: KnowledgeSearchService,
        scores: IComplexityScoreRepository,
        responses: IAutoResponseRepository,
        analytics: IAIAnalyticsRepository,
        settings_provider: Callable[[], AISettings]
    ):
        self._gateway = gateway
        self._tickets = tickets
        self._knowledge = knowledge
        self._scores = scores
        self._responses = responses
        self._analytics = analytics
        self._settings = settings_provider

    # ----- stages -----

    async def _analyze_stage(self, ticket: Ticket) -> StageOutcome[TicketAnalysis]:
        """Raises ConfigurationException; every other failure becomes the default."""
        current = self._settings()
        default = TicketAnalysis.fallback(ticket.category, ticket.priority)
        try:
            result = await self._gateway.invoke(
                TicketAnalysisPromptBuilder.build_prompt(ticket),
                operation="ticketAnalysis",
                max_tokens=current.operation_max_tokens(self.ANALYSIS_TOKEN_CAP),
                temperature=current.temperature,
                ticket_id=ticket.id,
                timeout_seconds=current.response_timeout,
            )
            payload = parse_model_payload(result.response_text, TicketAnalysisPayload)
        except ConfigurationException:
            raise
        except Exception as e:
            logger.warning(
                "Ticket analysis failed, using default analysis",
                extra={"ticket_id": ticket.id, "error_type": type(e).__name__, "error": error_message(e)}
            )
            return StageOutcome.failure(default, error_message(e))
        return StageOutcome.success(payload.to_domain(ticket))

    async def _knowledge_stage(self, ticket: Ticket) -> StageOutcome[List[str]]:
        try:
            matches = await self._knowledge.search_for_ticket(ticket)
        except Exception as e:
            logger.warning(
                "Knowledge search failed, continuing without snippets",
                extra={"ticket_id": ticket.id, "error": str(e)}
            )
            return StageOutcome.failure([], str(e))
        return StageOutcome.success([m.snippet for m in matches])

    async def _response_stage(
        self,
        ticket: Ticket,
        analysis: TicketAnalysis,
        snippets: Sequence[str]
    ) -> StageOutcome[AutoResponse]:
        current = self._settings()
        try:
            result = await self._gateway.invoke(
                AutoResponsePromptBuilder.build_prompt(ticket, analysis, snippets),
                operation="autoResponse",
                max_tokens=current.operation_max_tokens(self.RESPONSE_TOKEN_CAP),
                temperature=current.temperature,
                ticket_id=ticket.id,
                timeout_seconds=current.response_timeout,
            )
            payload = parse_model_payload(result.response_text, AutoResponsePayload)
        except Exception as e:
            logger.warning(
                "Auto-response generation failed, using default response",
                extra={"ticket_id": ticket.id, "error_type": type(e).__name__, "error": error_message(e)}
            )
            return StageOutcome.failure(AutoResponse.fallback(), error_message(e))
        return StageOutcome.success(payload.to_domain())

    async def _apply_stage(self, ticket: Ticket, response: AutoResponse) -> StageOutcome[bool]:
        """Post the response as a comment and record it."""
        current = self._settings()
        text = response.response[:current.max_response_length]
        try:
            await self._tickets.add_comment(ticket.id, AI_ASSISTANT_ID, text)
            await self._responses.create(AutoResponseRecord(
                ticket_id=ticket.id,
                response=text,
                confidence=response.confidence,
                applied=True,
                knowledge_base_articles=list(response.knowledge_base_articles),
                follow_up_actions=list(response.follow_up_actions),
            ))
        except Exception as e:
            logger.error(
                "Failed to apply auto-response",
                extra={"ticket_id": ticket.id, "error": str(e)}
            )
            return StageOutcome.failure(False, str(e))
        return StageOutcome.success(True)

    # ----- public operations -----

    async def analyze(self, ticket: Ticket) -> TicketAnalysis:
        return (await self._analyze_stage(ticket)).value

    async def generate_auto_response(
        self,
        ticket: Ticket,
        analysis: TicketAnalysis,
        knowledge_snippets: Sequence[str]
    ) -> AutoResponse:
        return (await self._response_stage(ticket, analysis, knowledge_snippets)).value

    @staticmethod
    def complexity_score(analysis: TicketAnalysis) -> int:
        return complexity_score(analysis)

    @staticmethod
    def should_escalate(analysis: TicketAnalysis, response: AutoResponse) -> bool:
        return should_escalate(analysis, response)

    async def get_complexity(self, ticket_id: str) -> ComplexityScore:
        score = await self._scores.get_by_ticket(ticket_id)
        if score is None:
            raise ResourceNotFoundException("ComplexityScore", ticket_id)
        return score

    async def process(self, ticket_id: str) -> TriageResult:
        """
        Triage one ticket.

        Raises ResourceNotFoundException for an unknown ticket; model and
        store failures inside the run are reported in ``TriageResult.errors``.
        """
        ticket = await self._tickets.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)

        result = TriageResult(ticket_id=ticket.id)
        if not self._gateway.is_configured():
            logger.info("AI not configured, skipping triage", extra={"ticket_id": ticket.id})
            result.ai_enabled = False
            return result

        try:
            analysis_outcome = await self._analyze_stage(ticket)
        except ConfigurationException as e:
            logger.info("AI not configured, skipping triage", extra={"ticket_id": ticket.id, "reason": e.message})
            result.ai_enabled = False
            return result
        analysis = analysis_outcome.value
        if not analysis_outcome.ok:
            result.errors["analysis"] = analysis_outcome.error

        knowledge_outcome = await self._knowledge_stage(ticket)
        if not knowledge_outcome.ok:
            result.errors["knowledge_search"] = knowledge_outcome.error

        response_outcome = await self._response_stage(ticket, analysis, knowledge_outcome.value)
        response = response_outcome.value
        if not response_outcome.ok:
            result.errors["auto_response"] = response_outcome.error

        score = complexity_score(analysis)
        escalate = should_escalate(analysis, response)

        current = self._settings()
        applied = False
        if (
            current.auto_response_enabled
            and response.response
            and response.confidence >= current.confidence_threshold
            and not escalate
        ):
            apply_outcome = await self._apply_stage(ticket, response)
            applied = apply_outcome.value
            if not apply_outcome.ok:
                result.errors["apply"] = apply_outcome.error

        if current.escalation_enabled and (score >= current.complexity_threshold or not applied):
            escalate = True

        if escalate and current.escalation_enabled and current.escalation_team_id is not None:
            team_id = str(current.escalation_team_id)
            try:
                await self._tickets.assign_to_team(ticket.id, team_id, AI_ASSISTANT_ID)
                result.escalated_to_team = team_id
            except Exception as e:
                logger.error("Failed to escalate ticket", extra={"ticket_id": ticket.id, "error": str(e)})
                result.errors["escalation"] = str(e)

        try:
            await self._scores.upsert(ComplexityScore(
                ticket_id=ticket.id,
                score=score,
                factors=complexity_factors(analysis),
            ))
            await self._analytics.create(AIAnalyticsRecord(
                ticket_id=ticket.id,
                analysis_performed=analysis_outcome.ok,
                response_generated=response_outcome.ok,
                response_applied=applied,
                confidence=analysis.confidence,
                complexity=score,
            ))
        except Exception as e:
            logger.error("Failed to persist triage results", extra={"ticket_id": ticket.id, "error": str(e)})
            result.errors["persist"] = str(e)

        result.analysis = analysis
        result.auto_response = response
        result.knowledge_snippets = knowledge_outcome.value
        result.complexity_score = score
        result.should_escalate = escalate
        result.response_applied = applied

        logger.info(
            "Ticket triaged",
            extra={
                "ticket_id": ticket.id,
                "complexity_score": score,
                "escalated": escalate,
                "response_applied": applied,
                "degraded_stages": sorted(result.errors),
            }
        )
        return result
