"""
Default program values used when the configuration or catalogue is first created.
"""

import copy

DEFAULT_TIER_BENEFITS = {
    "bronze": {"points_multiplier": "1.0", "description": "Standard point earning"},
    "silver": {"points_multiplier": "1.25", "description": "25% bonus points on all purchases"},
    "gold": {"points_multiplier": "1.5", "description": "50% bonus points + exclusive rewards"},
    "platinum": {"points_multiplier": "2.0", "description": "Double points + VIP perks"},
}


def default_tier_benefits():
    return copy.deepcopy(DEFAULT_TIER_BENEFITS)


# Starter catalogue created by the `init_loyalty_program` command.
DEFAULT_REWARDS = [
    {
        "name": "10% Off Your Next Purchase",
        "description": "Get 10% discount on your next order (excludes sale items)",
        "reward_type": "discount_percentage",
        "point_cost": 500,
        "value": 10,
        "expiry_days": 30,
        "terms": "Valid for 30 days. Cannot be combined with other offers. Excludes sale items.",
    },
    {
        "name": "KSH 1,000 Off",
        "description": "Save KSH 1,000 on orders over KSH 5,000",
        "reward_type": "discount_fixed",
        "point_cost": 800,
        "value": 1000,
        "expiry_days": 60,
        "terms": "Minimum order value KSH 5,000. Valid for 60 days.",
    },
    {
        "name": "Free Shipping",
        "description": "Free shipping on your next order (any value)",
        "reward_type": "free_shipping",
        "point_cost": 300,
        "value": 0,
        "expiry_days": 45,
        "terms": "Valid for 45 days. Applies to standard shipping only.",
    },
    {
        "name": "20% Off - Silver Tier",
        "description": "Get 20% discount on your next order",
        "reward_type": "discount_percentage",
        "point_cost": 1000,
        "value": 20,
        "min_tier": "silver",
        "expiry_days": 30,
        "terms": "Silver tier and above. Valid for 30 days.",
    },
    {
        "name": "VIP Gift - Gold Tier",
        "description": "Exclusive artisan gift product",
        "reward_type": "gift_product",
        "point_cost": 2000,
        "value": 0,
        "min_tier": "gold",
        "stock_limit": 50,
        "expiry_days": 90,
        "terms": "Gold tier and above. Limited stock available.",
    },
]
