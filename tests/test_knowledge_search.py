"""
Tests for knowledge article ranking and the keyword fallback
"""
import pytest

from conftest import RANKING, InMemoryKnowledgeArticleRepository, make_article, make_ticket
from helpdesk_ai.config import ArticleStatus
from helpdesk_ai.infrastructure.llm import ModelGateway
from helpdesk_ai.triage.application import KnowledgeSearchService
from helpdesk_ai.triage.application.knowledge_search import KEYWORD_RELEVANCE, search_terms


@pytest.fixture
def articles():
    return InMemoryKnowledgeArticleRepository([
        make_article(title="Resetting a forgotten password"),
        make_article(title="Configuring VPN access", content="Install the VPN client and import the profile."),
        make_article(title="Printer troubleshooting", content="Power cycle the printer and check the queue."),
        make_article(title="Unreleased draft", content="password tips", status=ArticleStatus.DRAFT),
    ])


class TestSearchTerms:
    def test_terms_are_long_unique_lowercase_words(self):
        ticket = make_ticket(title="Cannot login", description="The login page hangs", category="support")

        assert search_terms(ticket) == ["cannot", "login", "page", "hangs", "support"]


class TestSemanticSearch:
    @pytest.mark.asyncio
    async def test_ranking_filters_and_sorts(self, knowledge_search, transport):
        transport.reply(RANKING, [[
            {"articleIndex": 0, "relevanceScore": 40, "matchedContent": "password reset"},
            {"articleIndex": 1, "relevanceScore": 0.9, "matchedContent": "vpn"},
            {"articleIndex": 2, "relevanceScore": 20},
            {"articleIndex": 9, "relevanceScore": 99},
        ]])

        matches = await knowledge_search.semantic_search("vpn will not connect")

        assert [(m.article_id, m.relevance_score) for m in matches] == [("KB-2", 90), ("KB-1", 40)]
        assert matches[0].snippet.startswith("Configuring VPN access:")
        assert matches[1].matched_content == "password reset"

    @pytest.mark.asyncio
    async def test_only_published_articles_are_offered(self, knowledge_search, transport):
        transport.reply(RANKING, [[]])

        await knowledge_search.semantic_search("password")

        prompt = transport.calls_for(RANKING)[0]
        assert "Article 2:" in prompt
        assert "Article 3:" not in prompt
        assert "Unreleased draft" not in prompt

    @pytest.mark.asyncio
    async def test_no_published_articles_skips_model(self, gateway, transport, settings_provider):
        service = KnowledgeSearchService(gateway, InMemoryKnowledgeArticleRepository(), settings_provider)

        assert await service.semantic_search("anything") == []
        assert transport.prompts == []


class TestSearchForTicket:
    @pytest.mark.asyncio
    async def test_invalid_ranking_falls_back_to_keywords(self, knowledge_search, transport):
        transport.reply(RANKING, "Sorry, I cannot rank these.")

        matches = await knowledge_search.search_for_ticket(make_ticket())

        assert [m.article_id for m in matches] == ["KB-1"]
        assert matches[0].relevance_score == KEYWORD_RELEVANCE

    @pytest.mark.asyncio
    async def test_empty_ranking_falls_back_to_keywords(self, knowledge_search, transport):
        transport.reply(RANKING, [[]])

        matches = await knowledge_search.search_for_ticket(make_ticket())

        assert [m.article_id for m in matches] == ["KB-1"]

    @pytest.mark.asyncio
    async def test_unconfigured_gateway_uses_keywords(self, governor, articles, transport, settings_provider):
        service = KnowledgeSearchService(ModelGateway(governor, {}, settings_provider), articles, settings_provider)

        matches = await service.search_for_ticket(make_ticket(title="Printer jammed", description="Queue is stuck"))

        assert [m.title for m in matches] == ["Printer troubleshooting"]
        assert transport.prompts == []

    @pytest.mark.asyncio
    async def test_semantic_results_win_when_present(self, knowledge_search, transport):
        transport.reply(RANKING, [[{"articleIndex": 2, "relevanceScore": 75}]])

        matches = await knowledge_search.search_for_ticket(make_ticket())

        assert [(m.article_id, m.relevance_score) for m in matches] == [("KB-3", 75)]
