"""
Tests for the SQLAlchemy repositories against a SQLite database
"""
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

import helpdesk_ai.cost_control.infrastructure.models  # noqa: F401
import helpdesk_ai.learning.infrastructure.models  # noqa: F401
import helpdesk_ai.triage.infrastructure.models  # noqa: F401
from conftest import NOW, make_article
from helpdesk_ai.config import ArticleStatus, QueueStatus, TicketStatus
from helpdesk_ai.cost_control.domain import DEFAULT_PAID_LIMITS, UsageRecord
from helpdesk_ai.cost_control.infrastructure.repositories import (
    SQLAlchemyCostLimitsStore,
    SQLAlchemyUsageLedger,
)
from helpdesk_ai.infrastructure.database import Base, build_session_maker, session_context_from
from helpdesk_ai.learning.domain import LearningQueueItem, MiningStats
from helpdesk_ai.learning.infrastructure.repositories import (
    SQLAlchemyLearningQueueRepository,
    SQLAlchemyLearningRunRepository,
)
from helpdesk_ai.tickets.infrastructure.models import TicketModel
from helpdesk_ai.tickets.infrastructure.repositories import (
    SQLAlchemyKnowledgeArticleRepository,
    SQLAlchemyTicketRepository,
)
from helpdesk_ai.triage.domain import AIAnalyticsRecord, AutoResponseRecord, ComplexityScore
from helpdesk_ai.triage.infrastructure.repositories import (
    SQLAlchemyAIAnalyticsRepository,
    SQLAlchemyAutoResponseRepository,
    SQLAlchemyComplexityScoreRepository,
)


@pytest_asyncio.fixture
async def session_context(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'helpdesk.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield session_context_from(build_session_maker(engine))
    await engine.dispose()


def usage(minutes_ago: int, cost: float = 0.01) -> UsageRecord:
    return UsageRecord(
        timestamp=NOW - timedelta(minutes=minutes_ago),
        model_id="anthropic.claude-3-sonnet-20240229-v1:0",
        input_tokens=100,
        output_tokens=50,
        estimated_cost=cost,
        operation="ticket_analysis",
        ticket_id="T-1",
    )


class TestUsageLedger:
    @pytest.mark.asyncio
    async def test_append_and_query_window(self, session_context):
        ledger = SQLAlchemyUsageLedger(session_context)
        stored = await ledger.append(usage(90))
        await ledger.append(usage(30, cost=0.02))
        await ledger.append(usage(10, cost=0.03))

        assert stored.id is not None
        assert stored.timestamp == NOW - timedelta(minutes=90)

        window = await ledger.list_between(NOW - timedelta(hours=1), NOW)
        assert [r.estimated_cost for r in window] == [0.02, 0.03]
        assert await ledger.count_since(NOW - timedelta(minutes=45)) == 2

    @pytest.mark.asyncio
    async def test_recent_prune_and_clear(self, session_context):
        ledger = SQLAlchemyUsageLedger(session_context)
        for minutes in (300, 200, 100):
            await ledger.append(usage(minutes))

        recent = await ledger.recent(2)
        assert [r.timestamp for r in recent] == [NOW - timedelta(minutes=100), NOW - timedelta(minutes=200)]

        assert await ledger.prune_before(NOW - timedelta(minutes=250)) == 1
        assert await ledger.clear() == 2
        assert await ledger.recent(10) == []


class TestCostLimitsStore:
    @pytest.mark.asyncio
    async def test_singleton_row(self, session_context):
        store = SQLAlchemyCostLimitsStore(session_context)

        assert await store.get() is None

        await store.save(DEFAULT_PAID_LIMITS)
        await store.save(DEFAULT_PAID_LIMITS.merged({"daily_limit_usd": 7.5}))

        limits = await store.get()
        assert limits.daily_limit_usd == 7.5
        assert limits.max_requests_per_day == DEFAULT_PAID_LIMITS.max_requests_per_day


class TestTicketRepository:
    async def _seed(self, session_context):
        async with session_context() as session:
            session.add_all([
                TicketModel(id="T-1", title="VPN drops", category="bug", status=TicketStatus.RESOLVED,
                            created_at=NOW - timedelta(days=3), resolved_at=NOW - timedelta(days=2)),
                TicketModel(id="T-2", title="Printer jam", status=TicketStatus.CLOSED,
                            created_at=NOW - timedelta(days=3), resolved_at=NOW - timedelta(days=1)),
                TicketModel(id="T-3", title="Slow search", status=TicketStatus.OPEN,
                            created_at=NOW - timedelta(days=1)),
                TicketModel(id="T-4", title="Old issue", status=TicketStatus.RESOLVED,
                            created_at=NOW - timedelta(days=90), resolved_at=NOW - timedelta(days=60)),
            ])

    @pytest.mark.asyncio
    async def test_reads(self, session_context):
        await self._seed(session_context)
        repo = SQLAlchemyTicketRepository(session_context)

        ticket = await repo.get_by_id("T-1")
        assert ticket.category == "bug"
        assert ticket.resolved_at == NOW - timedelta(days=2)
        assert await repo.get_by_id("missing") is None
        assert sorted(t.id for t in await repo.get_many(["T-1", "T-3", "missing"])) == ["T-1", "T-3"]
        assert await repo.get_many([]) == []

        resolved = await repo.list_resolved_between(NOW - timedelta(days=30), NOW)
        assert [t.id for t in resolved] == ["T-1", "T-2"]

    @pytest.mark.asyncio
    async def test_assignment_and_comments(self, session_context):
        await self._seed(session_context)
        repo = SQLAlchemyTicketRepository(session_context)

        await repo.assign_to_team("T-3", 42, None)
        await repo.assign_to_team("missing", "7", None)
        comment = await repo.add_comment("T-3", "ai-assistant", "Try clearing the cache")

        ticket = await repo.get_by_id("T-3")
        assert ticket.team_id == "42"
        assert ticket.assignee_id is None
        assert comment.id is not None
        assert [c.content for c in await repo.list_comments("T-3")] == ["Try clearing the cache"]
        assert await repo.list_comments("T-1") == []


class TestKnowledgeArticleRepository:
    @pytest.mark.asyncio
    async def test_create_search_and_lifecycle(self, session_context):
        repo = SQLAlchemyKnowledgeArticleRepository(session_context)
        vpn = await repo.create(make_article(id=None, title="Fixing VPN drops", content="Renew the token",
                                             status=ArticleStatus.PUBLISHED, tags=["vpn"]))
        draft = await repo.create(make_article(id=None, title="VPN draft", content="Unreviewed",
                                               status=ArticleStatus.DRAFT))

        assert vpn.id is not None
        assert vpn.tags == ["vpn"]
        assert sorted(await repo.list_titles()) == ["Fixing VPN drops", "VPN draft"]
        assert [a.id for a in await repo.list_published()] == [vpn.id]
        assert [a.id for a in await repo.search(["vpn"], 5)] == [vpn.id]
        assert [a.id for a in await repo.search(["TOKEN"], 5)] == [vpn.id]
        assert await repo.search([], 5) == []

        updated = await repo.update_content(draft.id, "Reviewed steps")
        published = await repo.set_status(draft.id, ArticleStatus.PUBLISHED)

        assert updated.content == "Reviewed steps"
        assert published.status == ArticleStatus.PUBLISHED
        assert published.updated_at is not None
        assert await repo.set_status("missing", ArticleStatus.PUBLISHED) is None
        assert await repo.update_content("missing", "x") is None


class TestLearningRepositories:
    @pytest.mark.asyncio
    async def test_queue_items(self, session_context):
        repo = SQLAlchemyLearningQueueRepository(session_context)
        first = await repo.add(LearningQueueItem(ticket_id="T-1", created_at=NOW, updated_at=NOW))
        second = await repo.add(LearningQueueItem(ticket_id="T-2", created_at=NOW, updated_at=NOW))

        assert (await repo.get_active_for_ticket("T-1")).id == first.id

        first.status = QueueStatus.COMPLETED
        first.processed_at = NOW
        second.status = QueueStatus.PROCESSING
        second.processing_attempts = 1
        await repo.update_many([first, second])

        assert await repo.get_active_for_ticket("T-1") is None
        assert (await repo.get_active_for_ticket("T-2")).status == QueueStatus.PROCESSING
        completed = await repo.list_items(QueueStatus.COMPLETED)
        assert [i.ticket_id for i in completed] == ["T-1"]
        assert completed[0].processed_at == NOW
        assert len(await repo.list_items()) == 2

    @pytest.mark.asyncio
    async def test_runs_newest_first(self, session_context):
        repo = SQLAlchemyLearningRunRepository(session_context)
        await repo.create(MiningStats(tickets_analyzed=5, run_at=NOW - timedelta(days=1)))
        await repo.create(MiningStats(tickets_analyzed=8, patterns_found=2, articles_created=1, run_at=NOW))

        runs = await repo.list_recent(limit=1)

        assert len(runs) == 1
        assert runs[0].tickets_analyzed == 8
        assert runs[0].run_at == NOW


class TestTriageRepositories:
    @pytest.mark.asyncio
    async def test_complexity_score_upsert(self, session_context):
        repo = SQLAlchemyComplexityScoreRepository(session_context)

        created = await repo.upsert(ComplexityScore("T-1", 40, {"complexity": "medium"}))
        updated = await repo.upsert(ComplexityScore("T-1", 85, {"complexity": "high"}))

        assert created.updated_at is None
        assert updated.updated_at is not None
        stored = await repo.get_by_ticket("T-1")
        assert stored.score == 85
        assert stored.factors == {"complexity": "high"}
        assert await repo.get_by_ticket("T-2") is None

    @pytest.mark.asyncio
    async def test_auto_responses_and_analytics(self, session_context):
        responses = SQLAlchemyAutoResponseRepository(session_context)
        analytics = SQLAlchemyAIAnalyticsRepository(session_context)

        await responses.create(AutoResponseRecord("T-1", "Restart the router", 82, True, ["KB-1"], ["check logs"]))
        record = await analytics.create(AIAnalyticsRecord("T-1", True, True, True, 82, 15))

        stored = await responses.list_for_ticket("T-1")
        assert [(r.response, r.knowledge_base_articles) for r in stored] == [("Restart the router", ["KB-1"])]
        assert await responses.list_for_ticket("T-2") == []
        assert record.id is not None
        assert record.created_at is not None
