"""
Models for the Loyalty application.
"""

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

from loyalty.defaults import DEFAULT_TIER_BENEFITS, default_tier_benefits


class Tier(models.TextChoices):
    BRONZE = "bronze", "Bronze"
    SILVER = "silver", "Silver"
    GOLD = "gold", "Gold"
    PLATINUM = "platinum", "Platinum"


class LoyaltyConfig(models.Model):
    """
    Global earning rules and tier thresholds.
    A single row (pk=1) exists; use LoyaltyConfig.load() to fetch it.
    """

    SINGLETON_PK = 1

    program_active = models.BooleanField(default=True)

    # Points earned per KSH spent, before the tier multiplier.
    points_per_ksh = models.DecimalField(max_digits=10, decimal_places=4, default=Decimal("1"))
    point_expiration_months = models.PositiveIntegerField(default=12)

    review_points = models.PositiveIntegerField(default=50)
    referral_points_referrer = models.PositiveIntegerField(default=200)
    referral_points_referee = models.PositiveIntegerField(default=100)
    signup_bonus_points = models.PositiveIntegerField(default=100)
    birthday_bonus_points = models.PositiveIntegerField(default=150)

    # Lifetime spend (KSH) required for each tier. Bronze is always 0.
    silver_threshold = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("50000"))
    gold_threshold = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("150000"))
    platinum_threshold = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("300000"))

    # EXAMPLE: {"silver": {"points_multiplier": "1.25", "description": "25% bonus points"}}
    tier_benefits = models.JSONField(default=default_tier_benefits)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "loyalty configuration"

    def __str__(self):
        return "Loyalty configuration"

    @classmethod
    def load(cls):
        config, _ = cls.objects.get_or_create(pk=cls.SINGLETON_PK)
        return config

    @property
    def tier_thresholds(self):
        return {
            Tier.SILVER: self.silver_threshold,
            Tier.GOLD: self.gold_threshold,
            Tier.PLATINUM: self.platinum_threshold,
        }

    def multiplier_for(self, tier) -> Decimal:
        benefit = self.tier_benefits.get(tier) or DEFAULT_TIER_BENEFITS[tier]
        return Decimal(str(benefit["points_multiplier"]))

    def clean(self):
        thresholds = [self.silver_threshold, self.gold_threshold, self.platinum_threshold]
        if any(value is None or not Decimal(str(value)).is_finite() for value in thresholds):
            raise ValidationError({"silver_threshold": "Tier thresholds must be finite numbers."})
        if any(value < 0 for value in thresholds):
            raise ValidationError({"silver_threshold": "Tier thresholds must be non-negative."})
        if not (self.silver_threshold < self.gold_threshold < self.platinum_threshold):
            raise ValidationError(
                {"gold_threshold": "Tier thresholds must be strictly increasing (silver < gold < platinum)."}
            )

        if not isinstance(self.tier_benefits, dict):
            raise ValidationError({"tier_benefits": "Tier benefits must be an object keyed by tier."})
        for tier in Tier.values:
            benefit = self.tier_benefits.get(tier)
            if not isinstance(benefit, dict) or "points_multiplier" not in benefit:
                raise ValidationError({"tier_benefits": f"Missing points_multiplier for tier '{tier}'."})
            try:
                multiplier = Decimal(str(benefit["points_multiplier"]))
            except ArithmeticError:
                raise ValidationError({"tier_benefits": f"Invalid multiplier for tier '{tier}'."}) from None
            if not multiplier.is_finite():
                raise ValidationError({"tier_benefits": f"Invalid multiplier for tier '{tier}'."})
            if multiplier <= 0:
                raise ValidationError({"tier_benefits": f"Multiplier for tier '{tier}' must be positive."})

        if self.points_per_ksh is not None:
            rate = Decimal(str(self.points_per_ksh))
            if not rate.is_finite():
                raise ValidationError({"points_per_ksh": "Earn rate must be a finite number."})
            if rate < 0:
                raise ValidationError({"points_per_ksh": "Earn rate cannot be negative."})

    def save(self, *args, **kwargs):
        # Thresholds are validated on every write, not assumed at read time.
        self.pk = self.SINGLETON_PK
        self.clean()
        super().save(*args, **kwargs)


class LoyaltyAccount(models.Model):
    """
    One ledger account per customer, keyed by email.
    Balance and totals are caches of the PointTransaction ledger and are
    only mutated by ledger appends.
    """

    customer_id = models.CharField(max_length=255, blank=True)
    customer_email = models.EmailField(unique=True)
    customer_name = models.CharField(max_length=255, blank=True)

    current_balance = models.IntegerField(default=0)
    total_points_earned = models.PositiveIntegerField(default=0)
    total_points_redeemed = models.PositiveIntegerField(default=0)
    total_points_expired = models.PositiveIntegerField(default=0)

    lifetime_spend = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    tier = models.CharField(max_length=20, choices=Tier.choices, default=Tier.BRONZE)

    referral_code = models.CharField(max_length=32, unique=True)
    referral_count = models.PositiveIntegerField(default=0)
    referred_by = models.ForeignKey(
        "self", on_delete=models.SET_NULL, null=True, blank=True, related_name="referred_accounts"
    )

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    last_activity_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=Q(current_balance__gte=0), name="loyalty_account_balance_non_negative"),
        ]

    def __str__(self):
        return f"{self.customer_email} ({self.tier}, {self.current_balance} pts)"


class PointTransaction(models.Model):
    """
    The Ledger (Journal).
    Records every point movement (+ or -). Rows are never edited or deleted;
    corrections are new transactions.
    """

    EARN = "earn"
    REDEEM = "redeem"
    EXPIRE = "expire"
    ADJUST = "adjust"

    TRANSACTION_TYPES = [
        (EARN, "Earn Points"),
        (REDEEM, "Redeem Points"),
        (EXPIRE, "Expire Points"),
        (ADJUST, "Manual Adjustment"),
    ]

    # Where the movement came from; finer grained than the type.
    SOURCE_PURCHASE = "purchase"
    SOURCE_REVIEW = "review"
    SOURCE_REFERRAL = "referral"
    SOURCE_SIGNUP = "signup_bonus"
    SOURCE_BIRTHDAY = "birthday"
    SOURCE_REDEMPTION = "redemption"
    SOURCE_EXPIRATION = "expiration"
    SOURCE_ADMIN = "admin_adjustment"

    SOURCES = [
        (SOURCE_PURCHASE, "Purchase"),
        (SOURCE_REVIEW, "Product review"),
        (SOURCE_REFERRAL, "Referral"),
        (SOURCE_SIGNUP, "Signup bonus"),
        (SOURCE_BIRTHDAY, "Birthday bonus"),
        (SOURCE_REDEMPTION, "Reward redemption"),
        (SOURCE_EXPIRATION, "Point expiration"),
        (SOURCE_ADMIN, "Admin adjustment"),
    ]

    account = models.ForeignKey(LoyaltyAccount, on_delete=models.PROTECT, related_name="transactions")

    # Point amount.
    # Positive (+) = earn / adjust credit
    # Negative (-) = redeem / expire / adjust debit
    points = models.IntegerField()
    transaction_type = models.CharField(max_length=20, choices=TRANSACTION_TYPES)
    source = models.CharField(max_length=30, choices=SOURCES)

    # Order id, "review:<product>", "referral:<email>", "birthday:<year>", redemption code...
    reference_id = models.CharField(max_length=255, null=True, blank=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now, editable=False, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["account", "transaction_type", "reference_id"],
                condition=Q(transaction_type="earn", reference_id__isnull=False),
                name="unique_earn_per_reference",
            ),
        ]

    def __str__(self):
        return f"{self.account.customer_email} - {self.points} ({self.get_transaction_type_display()})"

    @property
    def customer_email(self):
        return self.account.customer_email

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Point transactions are immutable.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Point transactions cannot be deleted.")


class EarnBatch(models.Model):
    """
    A credited lot of points, consumed oldest-first by debits and expired
    whole once it ages past the configured expiration window.
    """

    account = models.ForeignKey(LoyaltyAccount, on_delete=models.PROTECT, related_name="earn_batches")
    transaction = models.OneToOneField(PointTransaction, on_delete=models.PROTECT, related_name="earn_batch")
    points = models.PositiveIntegerField()
    remaining = models.PositiveIntegerField()
    earned_at = models.DateTimeField(db_index=True)
    expired_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["earned_at", "id"]
        indexes = [models.Index(fields=["account", "earned_at"], name="loyalty_batch_account_age")]

    def __str__(self):
        return f"{self.account.customer_email}: {self.remaining}/{self.points} from {self.earned_at:%Y-%m-%d}"


class Reward(models.Model):
    """
    Represents an item or benefit that customers can redeem using points.
    e.g., "Free Shipping", "10% Discount Coupon".
    """

    TYPE_DISCOUNT_PERCENTAGE = "discount_percentage"
    TYPE_DISCOUNT_FIXED = "discount_fixed"
    TYPE_FREE_SHIPPING = "free_shipping"
    TYPE_GIFT_PRODUCT = "gift_product"
    TYPE_EXCLUSIVE_ACCESS = "exclusive_access"

    REWARD_TYPES = [
        (TYPE_DISCOUNT_PERCENTAGE, "Percentage discount"),
        (TYPE_DISCOUNT_FIXED, "Fixed discount (KSH)"),
        (TYPE_FREE_SHIPPING, "Free shipping"),
        (TYPE_GIFT_PRODUCT, "Gift product"),
        (TYPE_EXCLUSIVE_ACCESS, "Exclusive access"),
    ]

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    reward_type = models.CharField(max_length=30, choices=REWARD_TYPES)
    point_cost = models.PositiveIntegerField()

    # Percentage for discount_percentage, KSH for discount_fixed, unused otherwise.
    value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    min_tier = models.CharField(max_length=20, choices=Tier.choices, null=True, blank=True)

    # Both unset means unlimited stock.
    stock_limit = models.PositiveIntegerField(null=True, blank=True)
    stock_remaining = models.PositiveIntegerField(null=True, blank=True)

    # How many days a redemption code stays valid.
    expiry_days = models.PositiveIntegerField(default=30)
    terms = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def is_stock_limited(self):
        return self.stock_limit is not None

    @property
    def in_stock(self):
        return not self.is_stock_limited or (self.stock_remaining or 0) > 0

    def save(self, *args, **kwargs):
        # Runs on every write: a reward can become stock-limited, or unlimited, after creation.
        if self.stock_limit is None:
            self.stock_remaining = None
        elif self.stock_remaining is None:
            self.stock_remaining = self.stock_limit
        super().save(*args, **kwargs)


class RedeemedReward(models.Model):
    """
    A reward issued to a customer, identified by a time-bounded code.
    """

    STATUS_ACTIVE = "active"
    STATUS_USED = "used"
    STATUS_EXPIRED = "expired"

    STATUSES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_USED, "Used"),
        (STATUS_EXPIRED, "Expired"),
    ]

    account = models.ForeignKey(LoyaltyAccount, on_delete=models.PROTECT, related_name="redeemed_rewards")
    reward = models.ForeignKey(Reward, on_delete=models.SET_NULL, null=True, blank=True, related_name="redemptions")

    # Snapshot of the reward at redemption time; the catalogue entry may change or disappear.
    reward_name = models.CharField(max_length=255)
    reward_type = models.CharField(max_length=30, choices=Reward.REWARD_TYPES)
    reward_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))

    code = models.CharField(max_length=32, unique=True)
    points_spent = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_ACTIVE, db_index=True)

    redeemed_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField()
    used_at = models.DateTimeField(null=True, blank=True)
    used_order_id = models.CharField(max_length=255, null=True, blank=True)

    transaction = models.OneToOneField(
        PointTransaction, on_delete=models.PROTECT, related_name="redeemed_reward", null=True, blank=True
    )

    class Meta:
        ordering = ["-redeemed_at"]

    def __str__(self):
        return f"{self.code} - {self.reward_name} ({self.status})"

    @property
    def customer_email(self):
        return self.account.customer_email


class Referral(models.Model):
    """
    A credited referral. One row per referred customer, so a referrer can
    never be credited twice for the same signup.
    """

    referrer = models.ForeignKey(LoyaltyAccount, on_delete=models.PROTECT, related_name="referrals_made")
    referee_email = models.EmailField(unique=True)
    referee_name = models.CharField(max_length=255, blank=True)
    code = models.CharField(max_length=32)
    points_awarded = models.PositiveIntegerField(default=0)
    transaction = models.OneToOneField(
        PointTransaction, on_delete=models.PROTECT, related_name="referral", null=True, blank=True
    )
    created_at = models.DateTimeField(default=timezone.now, editable=False)

    def __str__(self):
        return f"{self.referrer.customer_email} -> {self.referee_email}"
