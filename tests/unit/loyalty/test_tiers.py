"""
Unit tests for the tier engine (pure functions, no database).
"""

from decimal import Decimal

import pytest

from loyalty.tiers import compute_tier, tier_meets, tier_rank

THRESHOLDS = {"silver": Decimal("50000"), "gold": Decimal("150000"), "platinum": Decimal("300000")}


class TestComputeTier:
    @pytest.mark.parametrize(
        "spend, expected",
        [
            (0, "bronze"),
            (Decimal("49999.99"), "bronze"),
            (50000, "silver"),
            (Decimal("149999"), "silver"),
            (150000, "gold"),
            (300000, "platinum"),
            (10_000_000, "platinum"),
        ],
    )
    def test_highest_threshold_met_wins(self, spend, expected):
        assert compute_tier(spend, THRESHOLDS) == expected

    def test_accepts_plain_numbers_as_thresholds(self):
        assert compute_tier("6000", {"silver": 5000, "gold": 15000, "platinum": 30000}) == "silver"


class TestTierComparison:
    def test_rank_follows_bronze_to_platinum(self):
        assert [tier_rank(t) for t in ("bronze", "silver", "gold", "platinum")] == [0, 1, 2, 3]

    def test_missing_requirement_is_always_met(self):
        assert tier_meets("bronze", None)
        assert tier_meets("bronze", "")

    def test_lower_tier_does_not_meet_requirement(self):
        assert not tier_meets("silver", "gold")
        assert tier_meets("gold", "gold")
        assert tier_meets("platinum", "gold")


class TestTierMonotonicity:
    def test_tier_never_drops_as_spend_grows(self):
        spends = [Decimal(n) * Decimal("2500.5") for n in range(0, 160)]
        ranks = [tier_rank(compute_tier(spend, THRESHOLDS)) for spend in spends]

        assert ranks == sorted(ranks)
        assert ranks[0] == 0
        assert ranks[-1] == 3

    def test_same_spend_always_gives_the_same_tier(self):
        for spend in (0, Decimal("49999.99"), 50000, Decimal("150000.01"), 300000):
            assert len({compute_tier(spend, THRESHOLDS) for _ in range(5)}) == 1
