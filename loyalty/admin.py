from django.contrib import admin

from loyalty.models import EarnBatch, LoyaltyAccount, LoyaltyConfig, PointTransaction, RedeemedReward, Referral, Reward


class ReadOnlyAdmin(admin.ModelAdmin):
    """
    Ledger projections are visible to admins but only ever written by the services.
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(LoyaltyConfig)
class LoyaltyConfigAdmin(admin.ModelAdmin):
    list_display = ("__str__", "program_active", "points_per_ksh", "point_expiration_months", "updated_at")

    def has_add_permission(self, request):
        return not LoyaltyConfig.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Reward)
class RewardAdmin(admin.ModelAdmin):
    list_display = ("name", "reward_type", "point_cost", "min_tier", "stock_remaining", "is_active")
    list_filter = ("reward_type", "min_tier", "is_active")
    search_fields = ("name",)


@admin.register(LoyaltyAccount)
class LoyaltyAccountAdmin(ReadOnlyAdmin):
    list_display = ("customer_email", "customer_name", "current_balance", "tier", "lifetime_spend", "referral_count")
    list_filter = ("tier",)
    search_fields = ("customer_email", "customer_name", "referral_code")


@admin.register(PointTransaction)
class PointTransactionAdmin(ReadOnlyAdmin):
    list_display = ("account", "transaction_type", "source", "points", "reference_id", "created_at")
    list_filter = ("transaction_type", "source", "created_at")
    search_fields = ("account__customer_email", "reference_id", "description")


@admin.register(EarnBatch)
class EarnBatchAdmin(ReadOnlyAdmin):
    list_display = ("account", "points", "remaining", "earned_at", "expired_at")
    search_fields = ("account__customer_email",)


@admin.register(RedeemedReward)
class RedeemedRewardAdmin(ReadOnlyAdmin):
    list_display = ("code", "account", "reward_name", "status", "redeemed_at", "expires_at", "used_order_id")
    list_filter = ("status", "reward_type")
    search_fields = ("code", "account__customer_email")


@admin.register(Referral)
class ReferralAdmin(ReadOnlyAdmin):
    list_display = ("referrer", "referee_email", "points_awarded", "created_at")
    search_fields = ("referrer__customer_email", "referee_email", "code")
