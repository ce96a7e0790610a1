"""
Learning Application Layer
==========================

LearningQueue, KnowledgeMiner and the learning repository interfaces.
"""

from helpdesk_ai.learning.application.services import (
    ILearningQueueRepository,
    ILearningRunRepository,
    LearningQueue,
)
from helpdesk_ai.learning.application.miner import KnowledgeMiner
from helpdesk_ai.learning.application.dto import (
    ResolutionPatternPayload,
    KnowledgeArticlePayload,
    ArticleImprovementPayload,
    LearningRunRequest,
    ArticleImprovementRequest,
    LearningQueueItemResponse,
    RequeueResponse,
    MiningStatsResponse,
    KnowledgeArticleResponse,
    ArticleImprovementResponse,
)

__all__ = [
    "ILearningQueueRepository",
    "ILearningRunRepository",
    "LearningQueue",
    "KnowledgeMiner",
    "ResolutionPatternPayload",
    "KnowledgeArticlePayload",
    "ArticleImprovementPayload",
    "LearningRunRequest",
    "ArticleImprovementRequest",
    "LearningQueueItemResponse",
    "RequeueResponse",
    "MiningStatsResponse",
    "KnowledgeArticleResponse",
    "ArticleImprovementResponse",
]
