"""
Tests for mining batch sizing, title similarity and domain value objects
"""
import pytest

from conftest import make_ticket
from helpdesk_ai.learning.domain import (
    ArticleImprovement,
    ResolutionPattern,
    chunked,
    compute_batch_size,
    find_similar_title,
    related_ticket_ids,
    significant_words,
    title_overlap,
)


class TestBatchSize:
    @pytest.mark.parametrize("tokens_per_ticket,budget,reserved,expected", [
        (100, 2000, 700, 10),
        (500, 2000, 700, 2),
        (300, 2000, 700, 4),
        (2000, 2000, 700, 2),
    ])
    def test_clamped_to_bounds(self, tokens_per_ticket, budget, reserved, expected):
        assert compute_batch_size(tokens_per_ticket, budget, reserved) == expected

    @pytest.mark.parametrize("tokens_per_ticket,budget,reserved", [
        (None, 2000, 700),
        (0, 2000, 700),
        (100, None, 700),
        (100, 500, 700),
    ])
    def test_default_when_nothing_to_divide(self, tokens_per_ticket, budget, reserved):
        assert compute_batch_size(tokens_per_ticket, budget, reserved) == 3

    def test_chunked(self):
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]
        assert list(chunked([], 3)) == []


class TestSimilarity:
    def test_significant_words(self):
        assert significant_words("How to reset a VPN token (v2)") == {"reset", "token"}

    def test_overlap_is_share_of_candidate_words(self):
        assert title_overlap("Reset VPN password quickly today", "How to reset your password") == pytest.approx(0.5)

    def test_find_similar_title(self):
        titles = ["Configuring printers", "How to reset your password"]

        assert find_similar_title("Password reset guide", titles, 0.5) == "How to reset your password"
        assert find_similar_title("Printer driver crashes", titles, 0.5) is None

    def test_short_titles_compare_whole(self):
        assert title_overlap("VPN", "vpn") == 1.0
        assert title_overlap("VPN", "Wifi") == 0.0

    def test_related_tickets_share_keywords(self):
        tickets = [
            make_ticket(id="T-1", title="Export crashes the app"),
            make_ticket(id="T-2", title="Search is slow", description="Results take a minute"),
            make_ticket(id="T-3", title="Report", description="Crashes while exporting"),
        ]

        assert related_ticket_ids("Application crashes", tickets) == ["T-1", "T-3"]

    def test_related_tickets_fall_back_to_group(self):
        tickets = [make_ticket(id="T-1"), make_ticket(id="T-2")]

        assert related_ticket_ids("Quantum flux", tickets) == ["T-1", "T-2"]


class TestValueObjects:
    @pytest.mark.parametrize("frequency,success_rate,expected", [
        (3, 70, True),
        (2, 90, False),
        (5, 69, False),
    ])
    def test_pattern_significance(self, frequency, success_rate, expected):
        pattern = ResolutionPattern("VPN drops", [], [], frequency, 2.0, success_rate)
        assert pattern.is_significant is expected

    def test_improvement_needs_content_and_confidence(self):
        assert ArticleImprovement(True, "new text", "clearer", 70).applicable is True
        assert ArticleImprovement(True, "", "clearer", 90).applicable is False
        assert ArticleImprovement(True, "new text", "clearer", 69).applicable is False
        assert ArticleImprovement(False, "new text", "clearer", 90).applicable is False
