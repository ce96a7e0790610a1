"""
Tests for the KnowledgeMiner

Resolved tickets are mined per category: patterns are extracted in
batches, significant patterns become draft articles, and near-duplicate
titles are skipped.
"""
import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from conftest import ARTICLE, IMPROVE, NOW, PATTERNS, make_article, make_ticket
from helpdesk_ai.config import AI_LEARNING_ID, ArticleStatus, QueueStatus, TicketStatus
from helpdesk_ai.core import (
    BudgetExceededException,
    QueueProcessingException,
    ResourceNotFoundException,
    ValidationException,
)
from helpdesk_ai.infrastructure.llm import ModelGateway
from helpdesk_ai.learning.application import KnowledgeMiner
from helpdesk_ai.learning.domain import AI_GENERATED_SOURCE, ResolutionPattern

CRASH_PATTERN = {
    "problemType": "Application crashes during export",
    "commonSolutions": ["Update the desktop client", "Clear the export cache"],
    "preventiveMeasures": ["Keep the client updated"],
    "frequency": 3,
    "averageResolutionTime": 3,
    "successRate": 90,
}

RARE_PATTERN = {
    "problemType": "Search index out of date",
    "commonSolutions": ["Rebuild the index"],
    "preventiveMeasures": [],
    "frequency": 1,
    "averageResolutionTime": 2,
    "successRate": 100,
}

CRASH_ARTICLE = {
    "title": "Fixing crashes when exporting reports",
    "content": "## Problem\nThe client crashes on export.\n\n## Solution\nUpdate the client.",
    "tags": ["export", "crash"],
    "difficulty": "beginner",
    "estimatedReadTime": 3,
    "confidence": 0.8,
}


def resolved(id: str, title: str, category: str, description: str = "Reported by a customer"):
    return make_ticket(id=id, title=title, description=description, category=category, status=TicketStatus.RESOLVED)


def seed_tickets(tickets) -> None:
    """Four resolved bug tickets and two resolved support tickets."""
    for ticket in (
        resolved("B-1", "App crashes on export", "bug"),
        resolved("B-2", "Export crashes the client", "bug"),
        resolved("B-3", "Crashes when exporting to PDF", "bug"),
        resolved("B-4", "Search results missing", "bug", "Search shows nothing"),
        resolved("S-1", "How do I change my avatar", "support"),
        resolved("S-2", "Where are invoices", "support"),
    ):
        tickets.add(ticket)


class TestRun:
    """Tests for mining over a resolution window."""

    @pytest.mark.asyncio
    async def test_significant_pattern_becomes_draft_article(self, miner, transport, tickets, articles, runs):
        seed_tickets(tickets)
        transport.reply(PATTERNS, [[CRASH_PATTERN, RARE_PATTERN]])
        transport.reply(ARTICLE, CRASH_ARTICLE)

        stats = await miner.run()

        assert (stats.tickets_analyzed, stats.patterns_found, stats.articles_created, stats.articles_published) == (6, 2, 1, 0)
        assert stats.skipped is False
        assert runs.runs == [stats]
        assert stats.id == 1

        # Only the bug category has enough tickets
        assert len(transport.calls_for(PATTERNS)) == 1
        assert "Ticket B-1" in transport.calls_for(PATTERNS)[0]
        assert "Ticket S-1" not in transport.calls_for(PATTERNS)[0]
        assert len(transport.calls_for(ARTICLE)) == 1

        article = articles.articles["KB-1"]
        assert article.title == CRASH_ARTICLE["title"]
        assert article.status == ArticleStatus.DRAFT
        assert article.category == "bug"
        assert article.created_by == AI_LEARNING_ID
        assert article.source == AI_GENERATED_SOURCE
        assert article.confidence == 80
        assert article.related_ticket_ids == ["B-1", "B-2", "B-3"]

    @pytest.mark.asyncio
    async def test_similar_title_is_not_duplicated(self, miner, transport, tickets, articles):
        articles._store(make_article(title="Fixing crashes when exporting large reports"))
        seed_tickets(tickets)
        transport.reply(PATTERNS, [[CRASH_PATTERN]])
        transport.reply(ARTICLE, CRASH_ARTICLE)

        stats = await miner.run()

        assert stats.patterns_found == 1
        assert stats.articles_created == 0
        assert len(articles.articles) == 1

    @pytest.mark.asyncio
    async def test_resolution_uses_last_comments(self, miner, transport, tickets):
        seed_tickets(tickets)
        for text in ("Looking into it", "Asked for logs", "Client updated", "Confirmed fixed"):
            await tickets.add_comment("B-1", "agent-1", text)
        transport.reply(PATTERNS, [[]])

        await miner.run()

        prompt = transport.calls_for(PATTERNS)[0]
        assert "Resolution: Asked for logs; Client updated; Confirmed fixed" in prompt
        assert "Time to resolve: 3 hours" in prompt

    @pytest.mark.asyncio
    async def test_too_few_resolved_tickets_is_skipped(self, miner, transport, tickets, runs):
        tickets.add(resolved("B-1", "App crashes on export", "bug"))
        tickets.add(resolved("B-2", "Export crashes the client", "bug"))
        tickets.add(make_ticket(id="O-1"))

        stats = await miner.run()

        assert stats.skipped is True
        assert stats.skipped_reason.startswith("Insufficient resolved tickets")
        assert stats.tickets_analyzed == 2
        assert runs.runs == []
        assert transport.prompts == []

    @pytest.mark.asyncio
    async def test_tickets_outside_window_are_ignored(self, miner, transport, tickets):
        seed_tickets(tickets)

        stats = await miner.run(window_start=NOW - timedelta(days=60), window_end=NOW - timedelta(days=31))

        assert stats.skipped is True
        assert stats.tickets_analyzed == 0

    @pytest.mark.asyncio
    async def test_inverted_window_rejected(self, miner):
        with pytest.raises(ValidationException):
            await miner.run(window_start=NOW, window_end=NOW - timedelta(days=1))

    @pytest.mark.asyncio
    async def test_unconfigured_gateway_skips(
        self, governor, tickets, articles, learning_queue, runs, settings_provider, clock
    ):
        miner = KnowledgeMiner(
            ModelGateway(governor, {}, settings_provider),
            tickets, articles, learning_queue, runs, settings_provider, clock=clock,
        )
        seed_tickets(tickets)

        stats = await miner.run()

        assert stats.skipped_reason == "AI not configured"
        assert runs.runs == []

    @pytest.mark.asyncio
    async def test_failed_pattern_batch_is_skipped(self, miner, transport, tickets, runs):
        seed_tickets(tickets)
        transport.reply(PATTERNS, "no patterns today")

        stats = await miner.run()

        assert stats.patterns_found == 0
        assert stats.articles_created == 0
        assert len(runs.runs) == 1

    @pytest.mark.asyncio
    async def test_patterns_with_wrong_field_types_are_dropped(self, miner, transport, tickets, articles):
        seed_tickets(tickets)
        transport.reply(PATTERNS, [[
            {**CRASH_PATTERN, "successRate": None},
            {**CRASH_PATTERN, "commonSolutions": {"first": "Update the client"}},
        ]])

        stats = await miner.run()

        assert stats.patterns_found == 0
        assert stats.articles_created == 0
        assert articles.articles == {}

    @pytest.mark.asyncio
    async def test_unexpected_batch_error_is_skipped(self, miner, tickets, runs):
        seed_tickets(tickets)
        analyze = AsyncMock(side_effect=RuntimeError("usage ledger unreachable"))

        with patch.object(miner, "_analyze_batch", analyze):
            stats = await miner.run()

        assert analyze.await_count == 1
        assert stats.patterns_found == 0
        assert len(runs.runs) == 1

    @pytest.mark.asyncio
    async def test_oversized_batch_is_mined_ticket_by_ticket(self, miner, transport, tickets):
        seed_tickets(tickets)
        transport.reply(ARTICLE, CRASH_ARTICLE)
        pattern = ResolutionPattern("Application crashes during export", ["Update"], [], 3, 3.0, 90)
        analyze = AsyncMock(side_effect=[
            BudgetExceededException("Request exceeds max tokens per request", token_ceiling=True),
            [pattern],
            [],
            [],
            [],
        ])

        with patch.object(miner, "_analyze_batch", analyze):
            stats = await miner.run()

        assert analyze.await_count == 5
        assert [len(call.args[0]) for call in analyze.await_args_list] == [4, 1, 1, 1, 1]
        assert stats.patterns_found == 1
        assert stats.articles_created == 1

    @pytest.mark.asyncio
    async def test_spend_blocked_batch_is_not_split(self, miner, tickets):
        seed_tickets(tickets)
        analyze = AsyncMock(side_effect=BudgetExceededException("Daily cost limit exceeded"))

        with patch.object(miner, "_analyze_batch", analyze):
            stats = await miner.run()

        assert analyze.await_count == 1
        assert stats.patterns_found == 0


class TestRunFromQueue:
    """Tests for mining the learning queue."""

    @pytest.mark.asyncio
    async def test_queue_items_completed_after_mining(self, miner, transport, tickets, learning_queue):
        seed_tickets(tickets)
        for ticket_id in tickets.tickets:
            await learning_queue.enqueue(ticket_id)
        transport.reply(PATTERNS, [[CRASH_PATTERN]])
        transport.reply(ARTICLE, CRASH_ARTICLE)

        stats = await miner.run_from_queue()

        assert stats.articles_created == 1
        completed = await learning_queue.list_items(QueueStatus.COMPLETED)
        assert len(completed) == 6
        assert all(item.processing_attempts == 1 for item in completed)

    @pytest.mark.asyncio
    async def test_insufficient_volume_still_completes_items(self, miner, tickets, learning_queue, runs):
        tickets.add(resolved("B-1", "App crashes on export", "bug"))
        await learning_queue.enqueue("B-1")

        stats = await miner.run_from_queue()

        assert stats.skipped is True
        assert runs.runs == []
        assert len(await learning_queue.list_items(QueueStatus.COMPLETED)) == 1

    @pytest.mark.asyncio
    async def test_empty_queue_is_skipped(self, miner):
        stats = await miner.run_from_queue()

        assert stats.skipped_reason == "No pending items in learning queue"

    @pytest.mark.asyncio
    async def test_unconfigured_gateway_claims_nothing(
        self, governor, tickets, articles, learning_queue, runs, settings_provider, clock
    ):
        miner = KnowledgeMiner(
            ModelGateway(governor, {}, settings_provider),
            tickets, articles, learning_queue, runs, settings_provider, clock=clock,
        )
        await learning_queue.enqueue("B-1")

        stats = await miner.run_from_queue()

        assert stats.skipped is True
        pending = await learning_queue.list_items(QueueStatus.PENDING)
        assert pending[0].processing_attempts == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_items(self, miner, tickets, learning_queue):
        await learning_queue.enqueue("B-1")
        await learning_queue.enqueue("B-2")

        with patch.object(tickets, "get_many", AsyncMock(side_effect=RuntimeError("database unavailable"))):
            with pytest.raises(QueueProcessingException) as exc_info:
                await miner.run_from_queue()

        assert exc_info.value.item_ids == [1, 2]
        failed = await learning_queue.list_items(QueueStatus.FAILED)
        assert [item.error for item in failed] == ["database unavailable", "database unavailable"]

    @pytest.mark.asyncio
    async def test_cancelled_run_fails_claimed_items(self, miner, tickets, learning_queue):
        seed_tickets(tickets)
        await learning_queue.enqueue("B-1")
        await learning_queue.enqueue("B-2")

        with patch.object(miner, "_mine", AsyncMock(side_effect=asyncio.CancelledError())):
            with pytest.raises(asyncio.CancelledError):
                await miner.run_from_queue()

        assert await learning_queue.list_items(QueueStatus.PROCESSING) == []
        failed = await learning_queue.list_items(QueueStatus.FAILED)
        assert [item.error for item in failed] == ["Knowledge mining cancelled"] * 2


class TestArticleMaintenance:
    @pytest.mark.asyncio
    async def test_confident_improvement_is_applied(self, miner, transport, articles):
        articles._store(make_article())
        transport.reply(IMPROVE, {
            "shouldUpdate": True,
            "improvedContent": "Use the reset link, then clear saved passwords in the browser.",
            "improvementReason": "Adds the browser step",
            "confidence": 85,
        })

        changed = await miner.improve_article("KB-1", "Cleared saved browser passwords", 1.5, True)

        assert changed is True
        assert articles.articles["KB-1"].content.startswith("Use the reset link, then clear")
        assert "Success: yes" in transport.calls_for(IMPROVE)[0]

    @pytest.mark.asyncio
    async def test_unsure_improvement_is_ignored(self, miner, transport, articles):
        original = make_article()
        articles._store(original)
        transport.reply(IMPROVE, {"shouldUpdate": True, "improvedContent": "Something else", "confidence": 50})

        assert await miner.improve_article("KB-1", "Retried", 2, False) is False
        assert articles.articles["KB-1"].content == original.content

    @pytest.mark.asyncio
    async def test_model_failure_means_no_change(self, miner, transport, articles):
        articles._store(make_article())
        transport.reply(IMPROVE, "cannot help")

        assert await miner.improve_article("KB-1", "Retried", 2, True) is False

    @pytest.mark.asyncio
    async def test_improving_missing_article_raises(self, miner):
        with pytest.raises(ResourceNotFoundException):
            await miner.improve_article("KB-404", "Retried", 2, True)

    @pytest.mark.asyncio
    async def test_publish_article(self, miner, articles):
        articles._store(make_article(status=ArticleStatus.DRAFT))

        article = await miner.publish_article("KB-1")

        assert article.status == ArticleStatus.PUBLISHED
        with pytest.raises(ResourceNotFoundException):
            await miner.publish_article("KB-404")
