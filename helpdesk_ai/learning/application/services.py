"""
Learning Application Services
=============================

LearningQueue: durable state machine of resolved tickets awaiting mining.

    pending -> processing -> completed | failed

Nothing moves an item backwards on its own. ``requeue_failed`` is the
operator action that returns failed items to pending under RetryPolicy.
The queue assumes a single claimant; two workers claiming at once can
both pick up the same items.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from helpdesk_ai.config import QueueStatus, VALID_QUEUE_STATUSES
from helpdesk_ai.core import ValidationException
from helpdesk_ai.learning.domain import LearningQueueItem, MiningStats, RetryPolicy
from helpdesk_ai.shared.infrastructure.clock import Clock, SystemClock
from helpdesk_ai.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces ==========

class ILearningQueueRepository(ABC):
    """Interface for learning queue storage."""

    @abstractmethod
    async def add(self, item: LearningQueueItem) -> LearningQueueItem:
        """Insert an item; returns it with its id set."""

    @abstractmethod
    async def get_active_for_ticket(self, ticket_id: str) -> Optional[LearningQueueItem]:
        """The pending or processing item of a ticket, if any."""

    @abstractmethod
    async def list_items(self, status: Optional[str] = None) -> List[LearningQueueItem]:
        """Items, optionally filtered by status, oldest first."""

    @abstractmethod
    async def update_many(self, items: Sequence[LearningQueueItem]) -> None:
        """Persist status, attempts, error and timestamps of ``items``."""


class ILearningRunRepository(ABC):
    """Interface for mining run statistics."""

    @abstractmethod
    async def create(self, stats: MiningStats) -> MiningStats:
        """Store the statistics of a run."""

    @abstractmethod
    async def list_recent(self, limit: int = 10) -> List[MiningStats]:
        """Most recent runs, newest first."""


# ========== Application Services ==========

class LearningQueue:
    """Queue of resolved tickets for the knowledge miner."""

    def __init__(
        self,
        repository: ILearningQueueRepository,
        clock: Optional[Clock] = None,
        retry_policy: Optional[RetryPolicy] = None
    ):
        self._repository = repository
        self._clock = clock or SystemClock()
        self._retry_policy = retry_policy or RetryPolicy()

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    async def enqueue(self, ticket_id: str) -> LearningQueueItem:
        """
        Queue a resolved ticket.

        A ticket that is already pending or processing is not queued twice;
        its existing item is returned.
        """
        existing = await self._repository.get_active_for_ticket(ticket_id)
        if existing is not None:
            logger.info(
                "Ticket already queued for learning",
                extra={"ticket_id": ticket_id, "queue_item_id": existing.id, "status": existing.status}
            )
            return existing

        now = self._clock.now()
        item = await self._repository.add(LearningQueueItem(
            ticket_id=ticket_id,
            status=QueueStatus.PENDING,
            created_at=now,
            updated_at=now,
        ))
        logger.info("Ticket queued for learning", extra={"ticket_id": ticket_id, "queue_item_id": item.id})
        return item

    async def claim_pending(self) -> List[LearningQueueItem]:
        """Mark every pending item processing and count the attempt."""
        items = await self._repository.list_items(QueueStatus.PENDING)
        if not items:
            return []

        now = self._clock.now()
        for item in items:
            item.status = QueueStatus.PROCESSING
            item.processing_attempts += 1
            item.updated_at = now
        await self._repository.update_many(items)

        logger.info("Claimed learning queue items", extra={"count": len(items)})
        return items

    async def complete(self, items: Sequence[LearningQueueItem]) -> None:
        if not items:
            return
        now = self._clock.now()
        for item in items:
            item.status = QueueStatus.COMPLETED
            item.processed_at = now
            item.updated_at = now
            item.error = None
        await self._repository.update_many(items)
        logger.info("Learning queue items completed", extra={"count": len(items)})

    async def fail(self, items: Sequence[LearningQueueItem], error: str) -> None:
        """Mark items failed. They stay failed until an operator requeues them."""
        if not items:
            return
        now = self._clock.now()
        message = error or "Unknown error"
        for item in items:
            item.status = QueueStatus.FAILED
            item.error = message
            item.updated_at = now
        await self._repository.update_many(items)
        logger.warning(
            "Learning queue items failed",
            extra={"count": len(items), "error": message, "queue_item_ids": [i.id for i in items]}
        )

    async def requeue_failed(self) -> List[LearningQueueItem]:
        """
        Return eligible failed items to pending.

        Items at the attempts cap stay failed permanently; items still inside
        their backoff window are left for a later call.
        """
        now = self._clock.now()
        failed = await self._repository.list_items(QueueStatus.FAILED)
        eligible = [item for item in failed if self._retry_policy.can_retry(item, now)]
        if not eligible:
            return []

        for item in eligible:
            item.status = QueueStatus.PENDING
            item.updated_at = now
        await self._repository.update_many(eligible)

        logger.info(
            "Requeued failed learning items",
            extra={"count": len(eligible), "skipped": len(failed) - len(eligible)}
        )
        return eligible

    async def list_items(self, status: Optional[str] = None) -> List[LearningQueueItem]:
        if status is not None and status not in VALID_QUEUE_STATUSES:
            raise ValidationException(
                f"Unknown queue status: {status}",
                {"valid": list(VALID_QUEUE_STATUSES)}
            )
        return await self._repository.list_items(status)
