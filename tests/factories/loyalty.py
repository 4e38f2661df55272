"""
Factories for the loyalty application
"""

import factory
from factory import fuzzy
from factory.django import DjangoModelFactory

from loyalty.models import LoyaltyAccount, Reward


class LoyaltyAccountFactory(DjangoModelFactory):
    """
    Factory for creating LoyaltyAccount instances in tests.
    Balances start at zero: credit them through LedgerService so the ledger,
    the cached totals and the earn batches stay consistent.
    """

    class Meta:
        model = LoyaltyAccount

    # Generating unique id for every customer
    customer_id = factory.Sequence(lambda n: f"client_{n}")
    customer_email = factory.Sequence(lambda n: f"customer{n}@example.com")
    customer_name = factory.Faker("name")
    referral_code = factory.Sequence(lambda n: f"REFTEST{n:04d}")


class RewardFactory(DjangoModelFactory):
    """
    Factory for creating Reward instances.
    """

    class Meta:
        model = Reward

    name = factory.Faker("catch_phrase")
    description = factory.Faker("sentence")
    reward_type = fuzzy.FuzzyChoice([x[0] for x in Reward.REWARD_TYPES])
    point_cost = factory.Faker("random_int", min=50, max=1000)
    expiry_days = 30
    is_active = True

    # TRAITS: RewardFactory(limited=True) / RewardFactory(gold_only=True)
    class Params:
        limited = factory.Trait(stock_limit=1)
        gold_only = factory.Trait(min_tier="gold")
