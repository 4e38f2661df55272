"""
Tier engine: maps lifetime spend to a membership tier.
Everything here is pure and does not touch the database.
"""

from decimal import Decimal

TIER_ORDER = ["bronze", "silver", "gold", "platinum"]


def tier_rank(tier: str) -> int:
    """
    Position of the tier in bronze < silver < gold < platinum.
    """
    return TIER_ORDER.index(tier)


def tier_meets(tier: str, min_tier) -> bool:
    """
    True when `tier` is at least `min_tier`. A missing requirement is always met.
    """
    if not min_tier:
        return True
    return tier_rank(tier) >= tier_rank(min_tier)


def compute_tier(lifetime_spend, thresholds) -> str:
    """
    Returns the highest tier whose threshold is met.

    Args:
        lifetime_spend: Total KSH spent by the customer.
        thresholds: Mapping with "silver", "gold" and "platinum" minimum spend.
                    Bronze has no threshold; it is the floor.
    """
    spend = Decimal(str(lifetime_spend))
    tier = TIER_ORDER[0]
    for candidate in TIER_ORDER[1:]:
        if spend >= Decimal(str(thresholds[candidate])):
            tier = candidate
    return tier
