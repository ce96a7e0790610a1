"""
Keyword helpers for article deduplication and ticket matching.
"""

import re
from typing import Iterable, List, Optional, Set

from helpdesk_ai.tickets.domain import Ticket

_WORD = re.compile(r"[a-z0-9]+")


def significant_words(text: str) -> Set[str]:
    """Lowercased alphanumeric words longer than 3 characters."""
    return {w for w in _WORD.findall((text or "").lower()) if len(w) > 3}


def title_overlap(candidate: str, existing: str) -> float:
    """Share of the candidate title's keywords that also appear in ``existing``."""
    candidate_words = significant_words(candidate)
    if not candidate_words:
        return 1.0 if candidate.strip().lower() == existing.strip().lower() else 0.0
    return len(candidate_words & significant_words(existing)) / len(candidate_words)


def find_similar_title(candidate: str, titles: Iterable[str], threshold: float) -> Optional[str]:
    for title in titles:
        if title_overlap(candidate, title) >= threshold:
            return title
    return None


def related_ticket_ids(problem_type: str, tickets: Iterable[Ticket]) -> List[str]:
    """
    Tickets whose title or description shares a keyword with the pattern.

    When none match, every ticket given is related.
    """
    tickets = list(tickets)
    words = significant_words(problem_type)
    related = [
        t.id for t in tickets
        if words & significant_words(f"{t.title} {t.description or ''}")
    ]
    return related or [t.id for t in tickets]
