"""
Triage prompt builders.

All prompt text for triage lives here; services only fill in ticket data.
"""

from typing import Sequence

from helpdesk_ai.tickets.domain import KnowledgeArticle, Ticket
from helpdesk_ai.triage.domain.entities import TicketAnalysis


class TicketAnalysisPromptBuilder:
    """Builds the structured ticket analysis prompt."""

    TEMPLATE = """You are an expert helpdesk AI analyst. Analyze this support ticket and provide structured insights.

Ticket Details:
Title: {title}
Description: {description}
Current Category: {category}
Current Priority: {priority}

Please analyze this ticket and respond with a JSON object containing:
{{
  "complexity": "low|medium|high|critical",
  "category": "bug|feature|support|enhancement|incident|request",
  "priority": "low|medium|high|urgent",
  "estimatedResolutionTime": number_of_hours,
  "tags": ["tag1", "tag2", "tag3"],
  "confidence": confidence_score_0_to_100,
  "reasoning": "Brief explanation of your analysis"
}}

Consider these factors:
- Technical complexity indicators
- User impact level
- Urgency keywords
- Required expertise level

Respond only with valid JSON."""

    @classmethod
    def build_prompt(cls, ticket: Ticket) -> str:
        return cls.TEMPLATE.format(
            title=ticket.title,
            description=ticket.description or "No description provided",
            category=ticket.category or "Not specified",
            priority=ticket.priority or "Not specified",
        )


class AutoResponsePromptBuilder:
    """Builds the reply-drafting prompt, grounded on knowledge snippets."""

    TEMPLATE = """You are a professional helpdesk support agent. Write a reply to this support ticket that is helpful and empathetic.

Ticket Information:
Title: {title}
Description: {description}
Category: {category}
Priority: {priority}
AI Analysis: Complexity {complexity}, Est. resolution {hours}h
{knowledge}
Write a reply that:
1. Acknowledges the issue
2. Provides immediate helpful information or next steps
3. Sets expectations for resolution time
4. Includes troubleshooting steps if applicable

Respond with a JSON object:
{{
  "response": "Your professional support response",
  "confidence": confidence_score_0_to_100,
  "knowledgeBaseArticles": ["article titles referenced"],
  "followUpActions": ["action1", "action2"],
  "escalationNeeded": boolean
}}

Only rely on the knowledge articles above for product facts. Respond only with valid JSON."""

    @classmethod
    def build_prompt(cls, ticket: Ticket, analysis: TicketAnalysis, snippets: Sequence[str]) -> str:
        knowledge = ""
        if snippets:
            knowledge = "\nRelevant Knowledge Base Articles:\n" + "\n".join(f"- {s}" for s in snippets) + "\n"
        return cls.TEMPLATE.format(
            title=ticket.title,
            description=ticket.description or "No description provided",
            category=ticket.category,
            priority=ticket.priority,
            complexity=analysis.complexity,
            hours=analysis.estimated_resolution_time,
            knowledge=knowledge,
        )


class KnowledgeRankingPromptBuilder:
    """Builds the prompt that ranks published articles against a query."""

    PREVIEW_LENGTH = 300

    TEMPLATE = """You are a search relevance AI. Rank these knowledge base articles by relevance to the user query.

User Query: "{query}"

Available Articles:
{articles}

Respond with a JSON array of relevant articles, ranked by relevance:
[
  {{
    "articleIndex": 0,
    "relevanceScore": 95,
    "matchedContent": "Brief excerpt explaining why this is relevant"
  }}
]

Only include articles with relevance score >= {min_relevance}. Limit to top {max_results} results."""

    @classmethod
    def summarize(cls, articles: Sequence[KnowledgeArticle]) -> str:
        parts = []
        for index, article in enumerate(articles):
            parts.append(
                f"Article {index}:\n"
                f"Title: {article.title}\n"
                f"Category: {article.category}\n"
                f"Tags: {', '.join(article.tags) or 'none'}\n"
                f"Content Preview: {article.content[:cls.PREVIEW_LENGTH]}...\n"
                f"---"
            )
        return "\n".join(parts)

    @classmethod
    def build_prompt(
        cls,
        query: str,
        articles: Sequence[KnowledgeArticle],
        max_results: int,
        min_relevance: int
    ) -> str:
        return cls.TEMPLATE.format(
            query=query,
            articles=cls.summarize(articles),
            max_results=max_results,
            min_relevance=min_relevance,
        )
