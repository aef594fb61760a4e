"""Tests for qualification scoring."""

import pytest
from leadflow.services.scoring import LeadAttributes, ScoreWeights, priority_for, score


class TestScore:
    def test_bare_lead_scores_source_only(self):
        result = score(LeadAttributes())
        assert result.breakdown() == {
            "contact_quality": 0,
            "intent_clarity": 0,
            "budget_realism": 0,
            "timeline_urgency": 0,
            "source_quality": 4,
        }
        assert result.total == 4
        assert result.priority == "low"

    def test_perfect_buyer_scores_100(self):
        attrs = LeadAttributes(
            phone_verified=True,
            email_verified=True,
            email="buyer@example.com",
            intent="buying",
            timeline="immediate",
            source="referral",
            details={"budget_min": 10_000_000, "budget_max": 15_000_000},
        )
        result = score(attrs)
        assert result.total == 100
        assert result.priority == "high"

    def test_unverified_email_earns_partial_contact_credit(self):
        result = score(LeadAttributes(email="someone@example.com"))
        assert result.contact_quality == 7  # 4 for having an email, 3 more while unverified

    def test_budget_requires_intent_specific_field(self):
        selling = LeadAttributes(intent="selling", details={"budget_min": 5})
        assert score(selling).budget_realism == 0

        selling = LeadAttributes(intent="selling", details={"expected_price": 25_000_000})
        assert score(selling).budget_realism == 18

    def test_investing_budget_credit(self):
        attrs = LeadAttributes(intent="investing", details={"investment_budget": 1})
        assert score(attrs).budget_realism == 16

    def test_weights_cap_each_factor(self):
        attrs = LeadAttributes(source="referral", timeline="immediate")
        result = score(attrs, ScoreWeights(source_quality=5, timeline_urgency=10))
        assert result.source_quality == 5
        assert result.timeline_urgency == 10

    def test_score_within_bounds(self):
        attrs = LeadAttributes(
            phone_verified=True, email_verified=True, intent="renting",
            timeline="long-term", source="whatsapp", details={"monthly_budget": 80_000},
        )
        result = score(attrs)
        assert 0 <= result.total <= 100
        assert result.total == sum(result.breakdown().values())


class TestPriority:
    @pytest.mark.parametrize("total,expected", [
        (100, "high"),
        (70, "high"),
        (69, "medium"),
        (40, "medium"),
        (39, "low"),
        (0, "low"),
    ])
    def test_thresholds(self, total, expected):
        assert priority_for(total) == expected
