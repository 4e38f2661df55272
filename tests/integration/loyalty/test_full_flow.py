"""
Integration tests for the full loyalty lifecycle through the API:
signup with referral -> purchases -> tier upgrade -> redemption -> code use -> expiration.
"""

from datetime import timedelta
from decimal import Decimal

from django.utils import timezone
from rest_framework import status

from loyalty.models import EarnBatch, LoyaltyAccount, LoyaltyConfig, PointTransaction
from loyalty.tasks import expire_points
from tests.factories.loyalty import RewardFactory


class TestLoyaltyLifecycle:
    def test_end_to_end(self, integration_client):
        config = LoyaltyConfig.load()
        config.silver_threshold = Decimal("5000")
        config.gold_threshold = Decimal("20000")
        config.platinum_threshold = Decimal("50000")
        config.save()

        # 1. Two customers sign up, the second one with the first one's code
        jane = integration_client.post(
            "/api/loyalty/events/signups/",
            {"customer_id": "c-1", "email": "jane@example.com", "name": "Jane"},
            format="json",
        ).data
        peter = integration_client.post(
            "/api/loyalty/events/signups/",
            {"customer_id": "c-2", "email": "peter@example.com", "name": "Peter", "referral_code": jane["referral_code"]},
            format="json",
        ).data
        assert jane["current_balance"] == 100
        assert peter["current_balance"] == 200

        # 2. Jane buys enough to become silver
        response = integration_client.post(
            "/api/loyalty/events/purchases/",
            {"customer_id": "c-1", "email": "jane@example.com", "order_total": "6000", "order_id": "ORD-1"},
            format="json",
        )
        assert response.status_code == status.HTTP_201_CREATED
        account = LoyaltyAccount.objects.get(customer_email="jane@example.com")
        # 100 signup + 200 referral + 6000 purchase
        assert account.current_balance == 6300
        assert account.tier == "silver"
        assert account.referral_count == 1

        # 3. Silver-only reward is now available and redeemable
        reward = RewardFactory(name="20% Off - Silver Tier", point_cost=1000, min_tier="silver", stock_limit=5)
        rewards = integration_client.get("/api/loyalty/accounts/jane@example.com/rewards/").data
        assert reward.name in [r["name"] for r in rewards]

        redemption = integration_client.post(
            "/api/loyalty/redemptions/",
            {"reward_id": reward.pk, "customer_id": "c-1", "email": "jane@example.com"},
            format="json",
        )
        assert redemption.status_code == status.HTTP_201_CREATED
        code = redemption.data["redeemed_reward"]["code"]

        used = integration_client.post(
            "/api/loyalty/redemptions/use/", {"code": code, "order_id": "ORD-2"}, format="json"
        )
        assert used.status_code == status.HTTP_200_OK

        # 4. A year later the unspent points expire, oldest first
        EarnBatch.objects.filter(account=account).update(earned_at=timezone.now() - timedelta(days=400))
        expire_points()

        account.refresh_from_db()
        assert account.current_balance == 0
        assert account.total_points_expired == 5300
        assert account.total_points_earned == account.total_points_redeemed + account.total_points_expired
        assert sum(account.transactions.values_list("points", flat=True)) == 0
        assert account.transactions.filter(transaction_type=PointTransaction.EXPIRE).count() >= 1
