"""Pytest fixtures and fakes for the test suite

This module provides:
1. FrozenClock, a settable clock
2. In-memory implementations of every repository interface
3. ScriptedTransport, a model transport answering from canned replies
4. Fixtures wiring them into the governor, gateway, triage engine and miner

Factory Functions:
    - make_ticket(**overrides) -> Ticket
    - make_article(**overrides) -> KnowledgeArticle
"""
import copy
import json
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import pytest

from helpdesk_ai.config import ArticleStatus, TicketStatus
from helpdesk_ai.config.ai_settings import AISettings, AISettingsManager
from helpdesk_ai.core import ProviderTransportException
from helpdesk_ai.cost_control.application import CostGovernor, ICostLimitsStore, IUsageLedger
from helpdesk_ai.cost_control.domain import DEFAULT_PAID_LIMITS, CostLimits, UsageRecord
from helpdesk_ai.infrastructure.llm import IModelTransport, ModelGateway
from helpdesk_ai.learning.application import (
    ILearningQueueRepository,
    ILearningRunRepository,
    KnowledgeMiner,
    LearningQueue,
)
from helpdesk_ai.learning.domain import LearningQueueItem, MiningStats
from helpdesk_ai.shared.infrastructure.clock import Clock
from helpdesk_ai.tickets.application import IKnowledgeArticleRepository, ITicketRepository
from helpdesk_ai.tickets.domain import KnowledgeArticle, Ticket, TicketComment
from helpdesk_ai.triage.application import (
    IAIAnalyticsRepository,
    IAutoResponseRepository,
    IComplexityScoreRepository,
    KnowledgeSearchService,
    TriageEngine,
)
from helpdesk_ai.triage.domain import AIAnalyticsRecord, AutoResponseRecord, ComplexityScore

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
CLAUDE_SONNET = "anthropic.claude-3-sonnet-20240229-v1:0"

# Prompt markers
ANALYSIS = "Analyze this support ticket"
RESPONSE = "Write a reply to this support ticket"
RANKING = "Rank these knowledge base articles"
PATTERNS = "Identify resolution patterns"
ARTICLE = "Write a knowledge base article"
IMPROVE = "Improve this knowledge base article"


# =============================================================================
# Clock
# =============================================================================

class FrozenClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


# =============================================================================
# Cost control fakes
# =============================================================================

class InMemoryUsageLedger(IUsageLedger):
    def __init__(self):
        self.records: List[UsageRecord] = []
        self._next_id = 1

    async def append(self, record: UsageRecord) -> UsageRecord:
        saved = replace(record, id=self._next_id)
        self._next_id += 1
        self.records.append(saved)
        return saved

    async def prune_before(self, cutoff: datetime) -> int:
        before = len(self.records)
        self.records = [r for r in self.records if r.timestamp >= cutoff]
        return before - len(self.records)

    async def list_between(self, start: datetime, end: datetime) -> List[UsageRecord]:
        return [r for r in self.records if start <= r.timestamp < end]

    async def count_since(self, since: datetime) -> int:
        return sum(1 for r in self.records if r.timestamp >= since)

    async def recent(self, limit: int) -> List[UsageRecord]:
        return sorted(self.records, key=lambda r: (r.timestamp, r.id), reverse=True)[:limit]

    async def clear(self) -> int:
        removed = len(self.records)
        self.records = []
        return removed


class InMemoryCostLimitsStore(ICostLimitsStore):
    def __init__(self, limits: Optional[CostLimits] = None):
        self.limits = limits
        self.saves = 0

    async def get(self) -> Optional[CostLimits]:
        return self.limits

    async def save(self, limits: CostLimits) -> CostLimits:
        self.limits = limits
        self.saves += 1
        return limits


# =============================================================================
# Ticket fakes
# =============================================================================

class InMemoryTicketRepository(ITicketRepository):
    def __init__(self, tickets: Sequence[Ticket] = ()):
        self.tickets: Dict[str, Ticket] = {t.id: t for t in tickets}
        self.comments: List[TicketComment] = []
        self.assignments: List[tuple] = []

    def add(self, ticket: Ticket) -> Ticket:
        self.tickets[ticket.id] = ticket
        return ticket

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        return self.tickets.get(ticket_id)

    async def get_many(self, ticket_ids: Sequence[str]) -> List[Ticket]:
        return [self.tickets[i] for i in ticket_ids if i in self.tickets]

    async def list_resolved_between(self, start: datetime, end: datetime) -> List[Ticket]:
        return [
            t for t in self.tickets.values()
            if t.is_resolved and t.resolved_at is not None and start <= t.resolved_at < end
        ]

    async def assign_to_team(self, ticket_id: str, team_id: str, assignee_id: Optional[str]) -> None:
        self.assignments.append((ticket_id, team_id, assignee_id))
        ticket = self.tickets[ticket_id]
        ticket.team_id = team_id
        ticket.assignee_id = assignee_id

    async def list_comments(self, ticket_id: str) -> List[TicketComment]:
        return [c for c in self.comments if c.ticket_id == ticket_id]

    async def add_comment(self, ticket_id: str, author_id: str, content: str) -> TicketComment:
        comment = TicketComment(
            id=str(len(self.comments) + 1),
            ticket_id=ticket_id,
            author_id=author_id,
            content=content,
            created_at=NOW,
        )
        self.comments.append(comment)
        return comment


class InMemoryKnowledgeArticleRepository(IKnowledgeArticleRepository):
    def __init__(self, articles: Sequence[KnowledgeArticle] = ()):
        self.articles: Dict[str, KnowledgeArticle] = {}
        for article in articles:
            self._store(article)

    def _store(self, article: KnowledgeArticle) -> KnowledgeArticle:
        if article.id is None:
            article = replace(article, id=f"KB-{len(self.articles) + 1}")
        self.articles[article.id] = article
        return article

    async def get_by_id(self, article_id: str) -> Optional[KnowledgeArticle]:
        return self.articles.get(article_id)

    async def list_published(self) -> List[KnowledgeArticle]:
        return [a for a in self.articles.values() if a.is_published]

    async def list_titles(self) -> List[str]:
        return [a.title for a in self.articles.values()]

    async def search(self, terms: Sequence[str], limit: int) -> List[KnowledgeArticle]:
        found = [
            a for a in self.articles.values()
            if a.is_published and any(t in f"{a.title} {a.content}".lower() for t in terms)
        ]
        return found[:limit]

    async def create(self, article: KnowledgeArticle) -> KnowledgeArticle:
        return self._store(replace(article, created_at=NOW))

    async def update_content(self, article_id: str, content: str) -> Optional[KnowledgeArticle]:
        article = self.articles.get(article_id)
        if article is None:
            return None
        article.content = content
        return article

    async def set_status(self, article_id: str, status: str) -> Optional[KnowledgeArticle]:
        article = self.articles.get(article_id)
        if article is None:
            return None
        article.status = status
        return article


# =============================================================================
# Triage fakes
# =============================================================================

class InMemoryComplexityScoreRepository(IComplexityScoreRepository):
    def __init__(self):
        self.scores: Dict[str, ComplexityScore] = {}

    async def upsert(self, score: ComplexityScore) -> ComplexityScore:
        self.scores[score.ticket_id] = score
        return score

    async def get_by_ticket(self, ticket_id: str) -> Optional[ComplexityScore]:
        return self.scores.get(ticket_id)


class InMemoryAutoResponseRepository(IAutoResponseRepository):
    def __init__(self):
        self.records: List[AutoResponseRecord] = []

    async def create(self, record: AutoResponseRecord) -> AutoResponseRecord:
        record.id = len(self.records) + 1
        self.records.append(record)
        return record

    async def list_for_ticket(self, ticket_id: str) -> List[AutoResponseRecord]:
        return [r for r in self.records if r.ticket_id == ticket_id]


class InMemoryAIAnalyticsRepository(IAIAnalyticsRepository):
    def __init__(self):
        self.records: List[AIAnalyticsRecord] = []

    async def create(self, record: AIAnalyticsRecord) -> AIAnalyticsRecord:
        record.id = len(self.records) + 1
        self.records.append(record)
        return record


# =============================================================================
# Learning fakes
# =============================================================================

class InMemoryLearningQueueRepository(ILearningQueueRepository):
    """Stores copies so callers cannot mutate stored state without update_many."""

    def __init__(self):
        self.items: Dict[int, LearningQueueItem] = {}
        self._next_id = 1

    async def add(self, item: LearningQueueItem) -> LearningQueueItem:
        stored = replace(item, id=self._next_id)
        self._next_id += 1
        self.items[stored.id] = stored
        return copy.copy(stored)

    async def get_active_for_ticket(self, ticket_id: str) -> Optional[LearningQueueItem]:
        for item in self.items.values():
            if item.ticket_id == ticket_id and item.is_active:
                return copy.copy(item)
        return None

    async def list_items(self, status: Optional[str] = None) -> List[LearningQueueItem]:
        return [
            copy.copy(item) for item in self.items.values()
            if status is None or item.status == status
        ]

    async def update_many(self, items: Sequence[LearningQueueItem]) -> None:
        for item in items:
            self.items[item.id] = copy.copy(item)


class InMemoryLearningRunRepository(ILearningRunRepository):
    def __init__(self):
        self.runs: List[MiningStats] = []

    async def create(self, stats: MiningStats) -> MiningStats:
        stats.id = len(self.runs) + 1
        self.runs.append(stats)
        return stats

    async def list_recent(self, limit: int = 10) -> List[MiningStats]:
        return list(reversed(self.runs))[:limit]


# =============================================================================
# Model transport
# =============================================================================

class ScriptedTransport(IModelTransport):
    """
    Answers by prompt marker.

    A script value may be a string (returned every time), a list (consumed
    in order, the last entry repeating) or an exception instance (raised).
    Responses use the Claude messages shape with reported token usage.
    """

    def __init__(self, script: Optional[Dict[str, Any]] = None):
        self.script: Dict[str, Any] = dict(script or {})
        self.prompts: List[str] = []
        self.bodies: List[Dict[str, Any]] = []
        self.closed = False

    def reply(self, marker: str, answer: Any) -> None:
        self.script[marker] = answer

    def calls_for(self, marker: str) -> List[str]:
        return [p for p in self.prompts if marker in p]

    def _answer(self, prompt: str) -> Any:
        for marker, answer in self.script.items():
            if marker not in prompt:
                continue
            if isinstance(answer, list):
                return answer.pop(0) if len(answer) > 1 else answer[0]
            return answer
        raise ProviderTransportException("No scripted reply for prompt")

    async def send(self, model_id: str, body: Dict[str, Any], timeout: float) -> Dict[str, Any]:
        prompt = body["inputText"] if "inputText" in body else body["messages"][-1]["content"]
        self.prompts.append(prompt)
        self.bodies.append(body)

        answer = self._answer(prompt)
        if isinstance(answer, Exception):
            raise answer
        text = answer if isinstance(answer, str) else json.dumps(answer)
        return {
            "content": [{"type": "text", "text": text}],
            "usage": {"input_tokens": max(1, len(prompt) // 4), "output_tokens": max(1, len(text) // 4)},
        }

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# Factory Functions
# =============================================================================

def make_ticket(
    id: str = "T-1",
    title: str = "Cannot login after password reset",
    description: str = "User reports the login page rejects the new password",
    category: str = "support",
    priority: str = "medium",
    status: str = TicketStatus.OPEN,
    created_at: datetime = NOW - timedelta(hours=6),
    **overrides
) -> Ticket:
    """Ticket with sensible defaults; resolved tickets get a resolved_at."""
    if status in (TicketStatus.RESOLVED, TicketStatus.CLOSED) and "resolved_at" not in overrides:
        overrides["resolved_at"] = created_at + timedelta(hours=3)
    return Ticket(
        id=id,
        title=title,
        description=description,
        category=category,
        priority=priority,
        status=status,
        created_at=created_at,
        **overrides
    )


def make_article(
    title: str = "Resetting a forgotten password",
    content: str = "Use the reset link on the login page, then sign in with the new password.",
    category: str = "support",
    status: str = ArticleStatus.PUBLISHED,
    **overrides
) -> KnowledgeArticle:
    return KnowledgeArticle(title=title, content=content, category=category, status=status, **overrides)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def ai_settings():
    """Runtime settings manager; tests tweak it with ``ai_settings.update(...)``."""
    return AISettingsManager(AISettings())


@pytest.fixture
def settings_provider(ai_settings):
    return lambda: ai_settings.current


@pytest.fixture
def ledger():
    return InMemoryUsageLedger()


@pytest.fixture
def limits_store():
    return InMemoryCostLimitsStore(DEFAULT_PAID_LIMITS)


@pytest.fixture
def governor(ledger, limits_store, clock):
    return CostGovernor(ledger, limits_store, clock=clock)


@pytest.fixture
def transport():
    return ScriptedTransport()


@pytest.fixture
def gateway(governor, transport, settings_provider):
    return ModelGateway(governor, {"anthropic": transport}, settings_provider)


@pytest.fixture
def tickets():
    return InMemoryTicketRepository()


@pytest.fixture
def articles():
    return InMemoryKnowledgeArticleRepository()


@pytest.fixture
def knowledge_search(gateway, articles, settings_provider):
    return KnowledgeSearchService(gateway, articles, settings_provider)


@pytest.fixture
def scores():
    return InMemoryComplexityScoreRepository()


@pytest.fixture
def auto_responses():
    return InMemoryAutoResponseRepository()


@pytest.fixture
def analytics():
    return InMemoryAIAnalyticsRepository()


@pytest.fixture
def triage_engine(gateway, tickets, knowledge_search, scores, auto_responses, analytics, settings_provider):
    return TriageEngine(gateway, tickets, knowledge_search, scores, auto_responses, analytics, settings_provider)


@pytest.fixture
def queue_repository():
    return InMemoryLearningQueueRepository()


@pytest.fixture
def learning_queue(queue_repository, clock):
    return LearningQueue(queue_repository, clock=clock)


@pytest.fixture
def runs():
    return InMemoryLearningRunRepository()


@pytest.fixture
def miner(gateway, tickets, articles, learning_queue, runs, settings_provider, clock):
    return KnowledgeMiner(gateway, tickets, articles, learning_queue, runs, settings_provider, clock=clock)

