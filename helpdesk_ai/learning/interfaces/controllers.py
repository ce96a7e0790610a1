"""
Learning Controllers (API Routes)
=================================

FastAPI routes for the learning queue, mining runs and article review.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from helpdesk_ai.learning.application import (
    ArticleImprovementRequest,
    ArticleImprovementResponse,
    KnowledgeArticleResponse,
    KnowledgeMiner,
    LearningQueue,
    LearningQueueItemResponse,
    LearningRunRequest,
    MiningStatsResponse,
    RequeueResponse,
)
from helpdesk_ai.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/learning", tags=["Knowledge Learning"])


# ========== Dependencies ==========

def get_learning_queue(request: Request) -> LearningQueue:
    """Get the learning queue from app state."""
    queue = getattr(request.app.state, "learning_queue", None)
    if queue is None:
        raise HTTPException(status_code=503, detail="Learning queue not available - database not initialized")
    return queue


def get_knowledge_miner(request: Request) -> KnowledgeMiner:
    """Get the knowledge miner from app state."""
    miner = getattr(request.app.state, "knowledge_miner", None)
    if miner is None:
        raise HTTPException(status_code=503, detail="Knowledge miner not available - database not initialized")
    return miner


# ========== Queue ==========

@router.post(
    "/queue/requeue",
    response_model=RequeueResponse,
    summary="Return eligible failed items to pending",
    description="""
    Operator action. A failed item is requeued only while it has fewer than
    3 processing attempts and its backoff (15 minutes, doubling per attempt)
    has elapsed. Items at the cap stay failed.
    """
)
async def requeue_failed(queue: LearningQueue = Depends(get_learning_queue)):
    items = await queue.requeue_failed()
    return RequeueResponse(requeued=[LearningQueueItemResponse.from_domain(item) for item in items])


@router.post(
    "/queue/{ticket_id}",
    response_model=LearningQueueItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Queue a resolved ticket for learning",
    description="Called when a ticket is resolved. A ticket already pending or processing is not queued twice."
)
async def enqueue_ticket(
    ticket_id: str,
    queue: LearningQueue = Depends(get_learning_queue)
):
    item = await queue.enqueue(ticket_id)
    return LearningQueueItemResponse.from_domain(item)


@router.get(
    "/queue",
    response_model=List[LearningQueueItemResponse],
    summary="List learning queue items"
)
async def list_queue(
    status_filter: Optional[str] = Query(None, alias="status", description="pending, processing, completed or failed"),
    queue: LearningQueue = Depends(get_learning_queue)
):
    items = await queue.list_items(status_filter)
    return [LearningQueueItemResponse.from_domain(item) for item in items]


# ========== Mining ==========

@router.post(
    "/run",
    response_model=MiningStatsResponse,
    summary="Run knowledge mining now",
    description="Mines either the pending learning queue or the tickets resolved in a time window."
)
async def run_mining(
    request: Request,
    payload: Optional[LearningRunRequest] = None,
    miner: KnowledgeMiner = Depends(get_knowledge_miner)
):
    payload = payload or LearningRunRequest()
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    logger.info(
        "Manual knowledge mining requested",
        extra={"correlation_id": correlation_id, "from_queue": payload.from_queue}
    )

    if payload.from_queue:
        stats = await miner.run_from_queue()
    else:
        stats = await miner.run(payload.window_start, payload.window_end)
    return MiningStatsResponse.from_domain(stats)


@router.get(
    "/runs",
    response_model=List[MiningStatsResponse],
    summary="Recent mining runs"
)
async def list_runs(
    limit: int = Query(10, ge=1, le=100),
    miner: KnowledgeMiner = Depends(get_knowledge_miner)
):
    return [MiningStatsResponse.from_domain(run) for run in await miner.recent_runs(limit)]


# ========== Articles ==========

@router.post(
    "/articles/{article_id}/publish",
    response_model=KnowledgeArticleResponse,
    summary="Publish a reviewed draft article"
)
async def publish_article(
    article_id: str,
    miner: KnowledgeMiner = Depends(get_knowledge_miner)
):
    article = await miner.publish_article(article_id)
    return KnowledgeArticleResponse.from_domain(article)


@router.post(
    "/articles/{article_id}/improve",
    response_model=ArticleImprovementResponse,
    summary="Improve an article with new resolution data"
)
async def improve_article(
    article_id: str,
    payload: ArticleImprovementRequest,
    miner: KnowledgeMiner = Depends(get_knowledge_miner)
):
    updated = await miner.improve_article(
        article_id, payload.resolution, payload.resolution_time, payload.success
    )
    return ArticleImprovementResponse(article_id=article_id, updated=updated)
