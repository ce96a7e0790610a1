"""
Knowledge Miner
===============

Turns resolved tickets into draft knowledge articles.

For every category with enough resolved tickets:

1. enrich tickets with their resolution text and time
2. extract resolution patterns in token-budgeted batches
3. synthesize a draft article for each significant pattern
4. skip drafts whose title matches an existing article

Batches and categories run one after another so spend stays predictable
against the cost limits. Model failures skip the affected batch or article.
"""

import asyncio
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence

from helpdesk_ai.config import ArticleStatus
from helpdesk_ai.config.ai_settings import AISettings
from helpdesk_ai.core import (
    BudgetExceededException,
    ConfigurationException,
    QueueProcessingException,
    ResourceNotFoundException,
    ValidationException,
    error_message,
)
from helpdesk_ai.infrastructure.llm import ModelGateway, parse_model_list, parse_model_payload
from helpdesk_ai.learning.application.dto import (
    ArticleImprovementPayload,
    KnowledgeArticlePayload,
    ResolutionPatternPayload,
)
from helpdesk_ai.learning.application.services import ILearningRunRepository, LearningQueue
from helpdesk_ai.learning.domain import (
    OUTPUT_RESERVE_TOKENS,
    ArticleGenerationPromptBuilder,
    ArticleImprovementPromptBuilder,
    DraftKnowledgeArticle,
    EnrichedTicket,
    MiningStats,
    PatternAnalysisPromptBuilder,
    ResolutionPattern,
    chunked,
    compute_batch_size,
    find_similar_title,
    related_ticket_ids,
)
from helpdesk_ai.shared.infrastructure.clock import Clock, SystemClock
from helpdesk_ai.shared.infrastructure.logging import get_logger
from helpdesk_ai.tickets.application import IKnowledgeArticleRepository, ITicketRepository
from helpdesk_ai.tickets.domain import KnowledgeArticle, Ticket

logger = get_logger(__name__)

DEFAULT_TOKEN_BUDGET = 2000
DEFAULT_RESOLUTION_HOURS = 4
RESOLUTION_COMMENTS = 3


class KnowledgeMiner:
    """Batch knowledge mining over resolved tickets."""

    PATTERN_TOKEN_CAP = 2000
    ARTICLE_TOKEN_CAP = 1500
    IMPROVE_TOKEN_CAP = 1500

    def __init__(
        self,
        gateway: ModelGateway,
        tickets: ITicketRepository,
        articles: IKnowledgeArticleRepository,
        queue: LearningQueue,
        runs: ILearningRunRepository,
        settings_provider: Callable[[], AISettings],
        clock: Optional[Clock] = None
    ):
        self._gateway = gateway
        self._tickets = tickets
        self._articles = articles
        self._queue = queue
        self._runs = runs
        self._settings = settings_provider
        self._clock = clock or SystemClock()

    # ----- entry points -----

    async def run(
        self,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None
    ) -> MiningStats:
        """Mine tickets resolved in the window (default: the last learning_window_days)."""
        end = window_end or self._clock.now()
        start = window_start or end - timedelta(days=self._settings().learning_window_days)
        if start >= end:
            raise ValidationException("window_start must be before window_end")

        if not self._gateway.is_configured():
            return self._skipped("AI not configured")

        tickets = await self._tickets.list_resolved_between(start, end)
        logger.info(
            "Knowledge mining started",
            extra={"window_start": start.isoformat(), "window_end": end.isoformat(), "tickets": len(tickets)}
        )
        return await self._mine(tickets)

    async def run_from_queue(self) -> MiningStats:
        """
        Mine the pending learning queue.

        Claimed items are completed when the run finishes, also when there
        were too few tickets to mine. An unexpected error marks them failed
        and is raised as QueueProcessingException; cancellation also marks
        them failed before propagating.
        """
        if not self._gateway.is_configured():
            return self._skipped("AI not configured")

        items = await self._queue.claim_pending()
        if not items:
            return self._skipped("No pending items in learning queue")

        try:
            tickets = await self._tickets.get_many([item.ticket_id for item in items])
            resolved = [t for t in tickets if t.is_resolved]
            stats = await self._mine(resolved)
        except asyncio.CancelledError:
            await self._queue.fail(items, "Knowledge mining cancelled")
            logger.warning("Knowledge mining from queue cancelled", extra={"queue_items": len(items)})
            raise
        except Exception as e:
            await self._queue.fail(items, str(e) or type(e).__name__)
            logger.error(
                "Knowledge mining from queue failed",
                extra={"queue_items": len(items), "error": str(e)}
            )
            raise QueueProcessingException(
                f"Knowledge mining failed: {e}",
                item_ids=[item.id for item in items]
            ) from e

        await self._queue.complete(items)
        return stats

    async def improve_article(
        self,
        article_id: str,
        resolution: str,
        resolution_time: float,
        success: bool
    ) -> bool:
        """Revise an article with new resolution data. Returns True when content changed."""
        article = await self._articles.get_by_id(article_id)
        if article is None:
            raise ResourceNotFoundException("KnowledgeArticle", article_id)

        prompt = ArticleImprovementPromptBuilder.build_prompt(
            article.title, article.content, resolution, resolution_time, success
        )
        try:
            result = await self._gateway.invoke(
                prompt,
                operation="knowledge_improveArticle",
                max_tokens=self._settings().operation_max_tokens(self.IMPROVE_TOKEN_CAP),
            )
            improvement = parse_model_payload(result.response_text, ArticleImprovementPayload).to_domain()
        except Exception as e:
            logger.warning(
                "Article improvement failed",
                extra={"article_id": article_id, "error_type": type(e).__name__, "error": error_message(e)}
            )
            return False

        if not improvement.applicable:
            return False

        await self._articles.update_content(article_id, improvement.improved_content)
        logger.info(
            "Knowledge article improved",
            extra={"article_id": article_id, "reason": improvement.improvement_reason}
        )
        return True

    async def publish_article(self, article_id: str) -> KnowledgeArticle:
        """Publish a reviewed draft."""
        article = await self._articles.set_status(article_id, ArticleStatus.PUBLISHED)
        if article is None:
            raise ResourceNotFoundException("KnowledgeArticle", article_id)
        logger.info("Knowledge article published", extra={"article_id": article_id})
        return article

    async def recent_runs(self, limit: int = 10) -> List[MiningStats]:
        return await self._runs.list_recent(limit)

    # ----- mining -----

    def _skipped(self, reason: str) -> MiningStats:
        logger.info("Knowledge mining skipped", extra={"reason": reason})
        return MiningStats(run_at=self._clock.now(), skipped_reason=reason)

    async def _mine(self, tickets: Sequence[Ticket]) -> MiningStats:
        current = self._settings()
        if len(tickets) < current.min_resolved_tickets:
            stats = self._skipped(
                f"Insufficient resolved tickets for learning "
                f"({len(tickets)} < {current.min_resolved_tickets})"
            )
            stats.tickets_analyzed = len(tickets)
            return stats

        stats = MiningStats(tickets_analyzed=len(tickets), run_at=self._clock.now())
        existing_titles = await self._articles.list_titles()

        for category, group in self._group_by_category(tickets).items():
            if len(group) < current.min_category_tickets:
                continue

            logger.info("Mining category", extra={"category": category, "tickets": len(group)})
            enriched = [await self._enrich(ticket) for ticket in group]
            patterns = await self._extract_patterns(enriched)
            stats.patterns_found += len(patterns)

            for pattern in patterns:
                if not pattern.is_significant:
                    continue
                draft = await self._generate_article(
                    pattern, category, related_ticket_ids(pattern.problem_type, group)
                )
                if draft is None:
                    continue

                duplicate = find_similar_title(draft.title, existing_titles, current.article_similarity_threshold)
                if duplicate is not None:
                    logger.info(
                        "Similar article already exists",
                        extra={"title": draft.title, "existing_title": duplicate}
                    )
                    continue

                saved = await self._articles.create(draft.to_article())
                existing_titles.append(saved.title)
                stats.articles_created += 1
                if saved.status == ArticleStatus.PUBLISHED:
                    stats.articles_published += 1
                logger.info(
                    "Knowledge article drafted",
                    extra={"article_id": saved.id, "title": saved.title, "category": category}
                )

        saved_stats = await self._runs.create(stats)
        logger.info("Knowledge mining completed", extra=saved_stats.to_dict())
        return saved_stats

    @staticmethod
    def _group_by_category(tickets: Sequence[Ticket]) -> Dict[str, List[Ticket]]:
        groups: Dict[str, List[Ticket]] = OrderedDict()
        for ticket in tickets:
            groups.setdefault(ticket.category or "general", []).append(ticket)
        return groups

    async def _enrich(self, ticket: Ticket) -> EnrichedTicket:
        comments = [c.content for c in await self._tickets.list_comments(ticket.id)]
        resolution = "; ".join(comments[-RESOLUTION_COMMENTS:]).strip() or ticket.notes or "Issue resolved"

        hours = ticket.resolution_hours
        resolution_time = max(1, round(hours)) if hours is not None else DEFAULT_RESOLUTION_HOURS

        return EnrichedTicket(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description or "",
            category=ticket.category,
            priority=ticket.priority,
            resolution=resolution,
            resolution_time=resolution_time,
            comments=comments,
        )

    async def _batch_size(self, enriched: Sequence[EnrichedTicket]) -> int:
        limits = await self._gateway.governor.get_limits()
        budget = limits.max_tokens_per_request or DEFAULT_TOKEN_BUDGET
        reserved = self._gateway.governor.estimate_tokens(
            PatternAnalysisPromptBuilder.base_prompt()
        ) + OUTPUT_RESERVE_TOKENS
        tokens_per_ticket = self._gateway.governor.estimate_tokens(enriched[0].summary()) if enriched else None
        size = compute_batch_size(tokens_per_ticket, budget, reserved)
        logger.info(
            "Mining batch size",
            extra={"budget": budget, "reserved": reserved, "tokens_per_ticket": tokens_per_ticket, "batch_size": size}
        )
        return size

    async def _extract_patterns(self, enriched: Sequence[EnrichedTicket]) -> List[ResolutionPattern]:
        patterns: List[ResolutionPattern] = []
        batch_size = await self._batch_size(enriched)

        for number, batch in enumerate(chunked(enriched, batch_size), start=1):
            try:
                patterns.extend(await self._analyze_batch(batch))
            except BudgetExceededException as e:
                if not e.token_ceiling:
                    logger.warning("Pattern batch blocked", extra={"batch": number, "reason": e.reason})
                    continue
                logger.warning(
                    "Pattern batch too large, mining tickets individually",
                    extra={"batch": number, "tickets": len(batch)}
                )
                for ticket in batch:
                    try:
                        patterns.extend(await self._analyze_batch([ticket]))
                    except ConfigurationException:
                        raise
                    except Exception as single_error:
                        logger.error(
                            "Failed to mine ticket",
                            extra={"ticket_id": ticket.id, "error": error_message(single_error)}
                        )
            except ConfigurationException:
                raise
            except Exception as e:
                logger.error("Pattern batch failed", extra={"batch": number, "error": error_message(e)})
        return patterns

    async def _analyze_batch(self, batch: Sequence[EnrichedTicket]) -> List[ResolutionPattern]:
        prompt = PatternAnalysisPromptBuilder.build_prompt("\n".join(t.summary() for t in batch))
        result = await self._gateway.invoke(
            prompt,
            operation="knowledge_analyzeResolvedTickets",
            max_tokens=self._settings().operation_max_tokens(self.PATTERN_TOKEN_CAP),
        )
        patterns = [p.to_domain() for p in parse_model_list(result.response_text, ResolutionPatternPayload)]
        logger.info("Pattern batch analyzed", extra={"tickets": len(batch), "patterns": len(patterns)})
        return patterns

    async def _generate_article(
        self,
        pattern: ResolutionPattern,
        category: str,
        related_ids: List[str]
    ) -> Optional[DraftKnowledgeArticle]:
        try:
            result = await self._gateway.invoke(
                ArticleGenerationPromptBuilder.build_prompt(pattern),
                operation="knowledge_generateArticle",
                max_tokens=self._settings().operation_max_tokens(self.ARTICLE_TOKEN_CAP),
            )
            payload = parse_model_payload(result.response_text, KnowledgeArticlePayload)
        except ConfigurationException:
            raise
        except Exception as e:
            logger.error(
                "Knowledge article generation failed",
                extra={"problem_type": pattern.problem_type, "error": error_message(e)}
            )
            return None
        return payload.to_draft(category, related_ids)
