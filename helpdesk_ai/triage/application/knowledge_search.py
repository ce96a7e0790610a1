"""
Knowledge Search
================

Finds knowledge articles relevant to a ticket: model ranking over the
published articles when a model is available, keyword search otherwise or
when ranking fails or finds nothing.
"""

from typing import Callable, List, Optional

from helpdesk_ai.config.ai_settings import AISettings
from helpdesk_ai.core import (
    BudgetExceededException,
    ConfigurationException,
    ProviderTransportException,
    ValidationException,
)
from helpdesk_ai.infrastructure.llm import ModelGateway, parse_model_list
from helpdesk_ai.shared.infrastructure.logging import get_logger
from helpdesk_ai.tickets.application import IKnowledgeArticleRepository
from helpdesk_ai.tickets.domain import Ticket
from helpdesk_ai.triage.application.dto import ArticleRankingPayload
from helpdesk_ai.triage.domain import KnowledgeMatch, KnowledgeRankingPromptBuilder

logger = get_logger(__name__)

KEYWORD_RELEVANCE = 50


def search_terms(ticket: Ticket) -> List[str]:
    """Lowercased words longer than 3 characters from title, description and category."""
    words = [
        *ticket.title.lower().split(),
        *(ticket.description or "").lower().split(),
        (ticket.category or "").lower(),
    ]
    seen = set()
    terms = []
    for word in words:
        if len(word) > 3 and word not in seen:
            seen.add(word)
            terms.append(word)
    return terms


class KnowledgeSearchService:
    """Ranks knowledge articles for triage."""

    MAX_RESULTS = 3
    MIN_RELEVANCE = 30
    SNIPPET_LENGTH = 500
    RANKING_TOKEN_CAP = 1000

    def __init__(
        self,
        gateway: ModelGateway,
        articles: IKnowledgeArticleRepository,
        settings_provider: Callable[[], AISettings]
    ):
        self._gateway = gateway
        self._articles = articles
        self._settings = settings_provider

    async def semantic_search(self, query: str, ticket_id: Optional[str] = None) -> List[KnowledgeMatch]:
        """
        Ask the model to rank published articles against ``query``.

        Raises gateway and validation errors to the caller.
        """
        published = await self._articles.list_published()
        if not published:
            return []

        prompt = KnowledgeRankingPromptBuilder.build_prompt(
            query, published, self.MAX_RESULTS, self.MIN_RELEVANCE
        )
        current = self._settings()
        result = await self._gateway.invoke(
            prompt,
            operation="knowledgeSearch",
            max_tokens=current.operation_max_tokens(self.RANKING_TOKEN_CAP),
            ticket_id=ticket_id,
        )
        rankings = parse_model_list(result.response_text, ArticleRankingPayload)

        matches = []
        for ranking in rankings:
            if ranking.article_index >= len(published) or ranking.relevance_score < self.MIN_RELEVANCE:
                continue
            article = published[ranking.article_index]
            matches.append(KnowledgeMatch(
                article_id=article.id,
                title=article.title,
                snippet=article.snippet(self.SNIPPET_LENGTH),
                relevance_score=ranking.relevance_score,
                matched_content=ranking.matched_content,
            ))
        matches.sort(key=lambda m: m.relevance_score, reverse=True)
        return matches[:self.MAX_RESULTS]

    async def keyword_search(self, ticket: Ticket) -> List[KnowledgeMatch]:
        terms = search_terms(ticket)
        if not terms:
            return []
        articles = await self._articles.search(terms, limit=self.MAX_RESULTS)
        return [
            KnowledgeMatch(
                article_id=article.id,
                title=article.title,
                snippet=article.snippet(self.SNIPPET_LENGTH),
                relevance_score=KEYWORD_RELEVANCE,
                matched_content=article.content[:200],
            )
            for article in articles[:self.MAX_RESULTS]
        ]

    async def search_for_ticket(self, ticket: Ticket) -> List[KnowledgeMatch]:
        """Semantic ranking first, keyword search as the fallback."""
        if self._gateway.is_configured():
            query = f"{ticket.title} {ticket.description or ''}".strip()
            try:
                matches = await self.semantic_search(query, ticket_id=ticket.id)
                if matches:
                    return matches
            except (
                BudgetExceededException,
                ConfigurationException,
                ProviderTransportException,
                ValidationException,
            ) as e:
                logger.warning(
                    "Semantic knowledge search failed, using keyword search",
                    extra={"ticket_id": ticket.id, "error": e.message}
                )
        return await self.keyword_search(ticket)
