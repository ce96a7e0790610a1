"""
Knowledge mining prompt builders.
"""

from helpdesk_ai.learning.domain.entities import ResolutionPattern


class PatternAnalysisPromptBuilder:
    """Builds the batch pattern extraction prompt."""

    TEMPLATE = """You are an expert knowledge management AI. Identify resolution patterns in these resolved support tickets.

Resolved Tickets:
{summaries}

Respond with a JSON array of patterns:
[
  {{
    "problemType": "Clear description of the problem type",
    "commonSolutions": ["solution1", "solution2"],
    "preventiveMeasures": ["prevention1", "prevention2"],
    "frequency": number_of_tickets_showing_this_pattern,
    "averageResolutionTime": average_hours,
    "successRate": success_rate_0_to_100
  }}
]

Focus on recurring problem types, effective solutions and preventive measures.
Limit to the top 5 most significant patterns. Respond only with valid JSON."""

    @classmethod
    def build_prompt(cls, summaries: str) -> str:
        return cls.TEMPLATE.format(summaries=summaries)

    @classmethod
    def base_prompt(cls) -> str:
        """The prompt with no tickets, used to size batches."""
        return cls.build_prompt("")


class ArticleGenerationPromptBuilder:
    """Builds the article synthesis prompt for one pattern."""

    TEMPLATE = """You are a technical writer. Write a knowledge base article for this resolution pattern.

Resolution Pattern:
Problem Type: {problem_type}
Common Solutions: {solutions}
Preventive Measures: {measures}
Average Resolution Time: {hours} hours
Success Rate: {success_rate}%

Respond with this JSON structure:
{{
  "title": "Clear, descriptive title",
  "content": "Article content in markdown",
  "tags": ["tag1", "tag2", "tag3"],
  "difficulty": "beginner|intermediate|advanced",
  "estimatedReadTime": minutes_to_read,
  "confidence": confidence_score_0_to_100
}}

The content should cover the problem, step-by-step solutions, prevention tips and common pitfalls.
Write for non-technical users."""

    @classmethod
    def build_prompt(cls, pattern: ResolutionPattern) -> str:
        return cls.TEMPLATE.format(
            problem_type=pattern.problem_type,
            solutions=", ".join(pattern.common_solutions),
            measures=", ".join(pattern.preventive_measures),
            hours=pattern.average_resolution_time,
            success_rate=pattern.success_rate,
        )


class ArticleImprovementPromptBuilder:
    """Builds the prompt that revises an article with new resolution data."""

    TEMPLATE = """Improve this knowledge base article using new resolution data.

Current Article:
Title: {title}
Content: {content}

New Resolution Data:
Resolution: {resolution}
Time taken: {hours} hours
Success: {success}

Respond with JSON:
{{
  "shouldUpdate": true/false,
  "improvedContent": "Updated article content if improvements are needed",
  "improvementReason": "Brief explanation of what was improved",
  "confidence": confidence_score_0_to_100
}}

Only suggest updates if the new data adds insight the article does not already cover."""

    @classmethod
    def build_prompt(cls, title: str, content: str, resolution: str, hours: float, success: bool) -> str:
        return cls.TEMPLATE.format(
            title=title,
            content=content,
            resolution=resolution,
            hours=hours,
            success="yes" if success else "no",
        )
