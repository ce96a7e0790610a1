"""
Learning Domain Layer
=====================

Queue items, mining entities and the pure helpers used by the miner.
"""

from helpdesk_ai.learning.domain.entities import (
    AI_GENERATED_SOURCE,
    LearningQueueItem,
    RetryPolicy,
    EnrichedTicket,
    ResolutionPattern,
    DraftKnowledgeArticle,
    ArticleImprovement,
    MiningStats,
)
from helpdesk_ai.learning.domain.batching import (
    DEFAULT_BATCH_SIZE,
    OUTPUT_RESERVE_TOKENS,
    compute_batch_size,
    chunked,
)
from helpdesk_ai.learning.domain.similarity import (
    significant_words,
    title_overlap,
    find_similar_title,
    related_ticket_ids,
)
from helpdesk_ai.learning.domain.prompts import (
    PatternAnalysisPromptBuilder,
    ArticleGenerationPromptBuilder,
    ArticleImprovementPromptBuilder,
)

__all__ = [
    "AI_GENERATED_SOURCE",
    "LearningQueueItem",
    "RetryPolicy",
    "EnrichedTicket",
    "ResolutionPattern",
    "DraftKnowledgeArticle",
    "ArticleImprovement",
    "MiningStats",
    "DEFAULT_BATCH_SIZE",
    "OUTPUT_RESERVE_TOKENS",
    "compute_batch_size",
    "chunked",
    "significant_words",
    "title_overlap",
    "find_similar_title",
    "related_ticket_ids",
    "PatternAnalysisPromptBuilder",
    "ArticleGenerationPromptBuilder",
    "ArticleImprovementPromptBuilder",
]
