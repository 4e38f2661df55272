"""
Unit tests for input validation in the loyalty serializers.
"""

from loyalty.models import LoyaltyConfig, PointTransaction
from loyalty.serializers import (
    LoyaltyConfigSerializer,
    PurchaseEventSerializer,
    RewardSerializer,
    SignupEventSerializer,
)
from tests.factories.loyalty import RewardFactory


class TestPurchaseEventSerializer:
    def test_valid_event_awards_points(self):
        serializer = PurchaseEventSerializer(
            data={"customer_id": "c-1", "email": "jane@example.com", "order_total": "250.00", "order_id": "ORD-1"}
        )

        assert serializer.is_valid(), serializer.errors
        tx = serializer.save()
        assert tx.points == 250
        assert tx.transaction_type == PointTransaction.EARN

    def test_non_positive_total_is_rejected(self):
        serializer = PurchaseEventSerializer(
            data={"customer_id": "c-1", "email": "jane@example.com", "order_total": "0", "order_id": "ORD-1"}
        )

        assert not serializer.is_valid()
        assert "order_total" in serializer.errors

    def test_invalid_email_is_rejected(self):
        serializer = PurchaseEventSerializer(
            data={"customer_id": "c-1", "email": "not-an-email", "order_total": "10", "order_id": "ORD-1"}
        )

        assert not serializer.is_valid()
        assert "email" in serializer.errors


class TestSignupEventSerializer:
    def test_blank_referral_code_is_ignored(self):
        serializer = SignupEventSerializer(
            data={"customer_id": "c-1", "email": "jane@example.com", "name": "Jane", "referral_code": ""}
        )

        assert serializer.is_valid(), serializer.errors
        account = serializer.save()
        assert account.referred_by is None


class TestLoyaltyConfigSerializer:
    def test_partial_update_validates_merged_thresholds(self):
        serializer = LoyaltyConfigSerializer(LoyaltyConfig.load(), data={"gold_threshold": "10"}, partial=True)

        assert not serializer.is_valid()
        assert "gold_threshold" in serializer.errors

    def test_valid_partial_update(self):
        serializer = LoyaltyConfigSerializer(LoyaltyConfig.load(), data={"review_points": 70}, partial=True)

        assert serializer.is_valid(), serializer.errors
        serializer.save()
        assert LoyaltyConfig.load().review_points == 70


class TestRewardSerializer:
    def test_remaining_stock_cannot_exceed_limit(self):
        reward = RewardFactory(stock_limit=5)
        serializer = RewardSerializer(reward, data={"stock_remaining": 6}, partial=True)

        assert not serializer.is_valid()
        assert "stock_remaining" in serializer.errors

    def test_in_stock_is_rendered(self):
        reward = RewardFactory(stock_limit=None)

        assert RewardSerializer(reward).data["in_stock"] is True
