"""
Serializers for the Loyalty application.
"""

import copy

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from loyalty.exceptions import LoyaltyError
from loyalty.models import LoyaltyAccount, LoyaltyConfig, PointTransaction, RedeemedReward, Reward
from loyalty.referrals import ReferralService
from loyalty.services import LedgerService


def as_validation_error(error: LoyaltyError) -> serializers.ValidationError:
    return serializers.ValidationError({"code": error.code, "detail": error.message})


class LoyaltyConfigSerializer(serializers.ModelSerializer):
    """
    Admin view of the program configuration. Thresholds are validated on write.
    """

    class Meta:
        model = LoyaltyConfig
        fields = [
            "program_active",
            "points_per_ksh",
            "point_expiration_months",
            "review_points",
            "referral_points_referrer",
            "referral_points_referee",
            "signup_bonus_points",
            "birthday_bonus_points",
            "silver_threshold",
            "gold_threshold",
            "platinum_threshold",
            "tier_benefits",
            "updated_at",
        ]
        read_only_fields = ["updated_at"]

    def validate(self, attrs):
        # Run the model's own checks on the merged state so partial updates are covered too.
        candidate = copy.copy(self.instance) if self.instance else LoyaltyConfig()
        for field, value in attrs.items():
            setattr(candidate, field, value)
        try:
            candidate.clean()
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.message_dict) from e
        return attrs


class RewardSerializer(serializers.ModelSerializer):
    in_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Reward
        fields = [
            "id",
            "name",
            "description",
            "reward_type",
            "point_cost",
            "value",
            "min_tier",
            "stock_limit",
            "stock_remaining",
            "expiry_days",
            "terms",
            "is_active",
            "in_stock",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate(self, attrs):
        stock_limit = attrs.get("stock_limit", getattr(self.instance, "stock_limit", None))
        if "stock_remaining" in attrs:
            stock_remaining = attrs["stock_remaining"]
        elif stock_limit is None:
            # Clearing the limit also clears the counter on save.
            stock_remaining = None
        else:
            stock_remaining = getattr(self.instance, "stock_remaining", None)
        if stock_limit is None and stock_remaining is not None:
            raise serializers.ValidationError({"stock_remaining": "Set stock_limit for a stock-limited reward."})
        if stock_limit is not None and stock_remaining is not None and stock_remaining > stock_limit:
            raise serializers.ValidationError({"stock_remaining": "Remaining stock cannot exceed the stock limit."})
        return attrs


class PointTransactionSerializer(serializers.ModelSerializer):
    customer_email = serializers.EmailField(source="account.customer_email", read_only=True)

    class Meta:
        model = PointTransaction
        fields = [
            "id",
            "customer_email",
            "transaction_type",
            "source",
            "points",
            "reference_id",
            "description",
            "created_at",
        ]
        read_only_fields = fields


class LoyaltyAccountSerializer(serializers.ModelSerializer):
    """
    Read-only projection of a customer's account.
    """

    class Meta:
        model = LoyaltyAccount
        fields = [
            "customer_id",
            "customer_email",
            "customer_name",
            "current_balance",
            "total_points_earned",
            "total_points_redeemed",
            "total_points_expired",
            "lifetime_spend",
            "tier",
            "referral_code",
            "referral_count",
            "created_at",
            "last_activity_at",
        ]
        read_only_fields = fields


class RedeemedRewardSerializer(serializers.ModelSerializer):
    customer_email = serializers.EmailField(source="account.customer_email", read_only=True)
    reward_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = RedeemedReward
        fields = [
            "id",
            "customer_email",
            "reward_id",
            "reward_name",
            "reward_type",
            "reward_value",
            "code",
            "points_spent",
            "status",
            "redeemed_at",
            "expires_at",
            "used_at",
            "used_order_id",
        ]
        read_only_fields = fields


# ---------------------------------------------------------------------------
# Inbound events from collaborating subsystems
# ---------------------------------------------------------------------------


class CustomerEventSerializer(serializers.Serializer):
    customer_id = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class PurchaseEventSerializer(CustomerEventSerializer):
    """
    Serializer for completed orders (earning points).
    """

    order_total = serializers.DecimalField(max_digits=14, decimal_places=2)
    order_id = serializers.CharField(max_length=255)

    def validate_order_total(self, value):
        if value <= 0:
            raise serializers.ValidationError("Order total must be positive.")
        return value

    def create(self, validated_data):
        try:
            return LedgerService().award_purchase_points(
                validated_data["customer_id"],
                validated_data["email"],
                validated_data["name"],
                validated_data["order_total"],
                validated_data["order_id"],
            )
        except LoyaltyError as e:
            raise as_validation_error(e) from e


class ReviewEventSerializer(CustomerEventSerializer):
    product_id = serializers.CharField(max_length=255)
    product_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")

    def create(self, validated_data):
        try:
            return LedgerService().award_review_points(
                validated_data["customer_id"],
                validated_data["email"],
                validated_data["name"],
                validated_data["product_id"],
                validated_data["product_name"],
            )
        except LoyaltyError as e:
            raise as_validation_error(e) from e


class BirthdayEventSerializer(CustomerEventSerializer):
    year = serializers.IntegerField(min_value=1900, max_value=9999, required=False)

    def create(self, validated_data):
        try:
            return LedgerService().award_birthday_bonus(
                validated_data["customer_id"],
                validated_data["email"],
                validated_data["name"],
                year=validated_data.get("year"),
            )
        except LoyaltyError as e:
            raise as_validation_error(e) from e


class SignupEventSerializer(CustomerEventSerializer):
    referral_code = serializers.CharField(max_length=32, required=False, allow_blank=True)

    def create(self, validated_data):
        try:
            return ReferralService().register_signup(
                validated_data["customer_id"],
                validated_data["email"],
                validated_data["name"],
                referral_code=validated_data.get("referral_code") or None,
            )
        except LoyaltyError as e:
            raise as_validation_error(e) from e


class RedemptionRequestSerializer(serializers.Serializer):
    """
    Serializer specifically for spending points on a reward.
    """

    reward_id = serializers.IntegerField()
    customer_id = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    email = serializers.EmailField()


class CodeValidationRequestSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=32)
    email = serializers.EmailField()


class CodeUsageRequestSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=32)
    order_id = serializers.CharField(max_length=255)
