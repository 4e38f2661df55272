from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import loyalty.defaults

TIER_CHOICES = [("bronze", "Bronze"), ("silver", "Silver"), ("gold", "Gold"), ("platinum", "Platinum")]

REWARD_TYPES = [
    ("discount_percentage", "Percentage discount"),
    ("discount_fixed", "Fixed discount (KSH)"),
    ("free_shipping", "Free shipping"),
    ("gift_product", "Gift product"),
    ("exclusive_access", "Exclusive access"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LoyaltyConfig",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("program_active", models.BooleanField(default=True)),
                ("points_per_ksh", models.DecimalField(decimal_places=4, default=Decimal("1"), max_digits=10)),
                ("point_expiration_months", models.PositiveIntegerField(default=12)),
                ("review_points", models.PositiveIntegerField(default=50)),
                ("referral_points_referrer", models.PositiveIntegerField(default=200)),
                ("referral_points_referee", models.PositiveIntegerField(default=100)),
                ("signup_bonus_points", models.PositiveIntegerField(default=100)),
                ("birthday_bonus_points", models.PositiveIntegerField(default=150)),
                ("silver_threshold", models.DecimalField(decimal_places=2, default=Decimal("50000"), max_digits=14)),
                ("gold_threshold", models.DecimalField(decimal_places=2, default=Decimal("150000"), max_digits=14)),
                (
                    "platinum_threshold",
                    models.DecimalField(decimal_places=2, default=Decimal("300000"), max_digits=14),
                ),
                ("tier_benefits", models.JSONField(default=loyalty.defaults.default_tier_benefits)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"verbose_name": "loyalty configuration"},
        ),
        migrations.CreateModel(
            name="LoyaltyAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_id", models.CharField(blank=True, max_length=255)),
                ("customer_email", models.EmailField(max_length=254, unique=True)),
                ("customer_name", models.CharField(blank=True, max_length=255)),
                ("current_balance", models.IntegerField(default=0)),
                ("total_points_earned", models.PositiveIntegerField(default=0)),
                ("total_points_redeemed", models.PositiveIntegerField(default=0)),
                ("total_points_expired", models.PositiveIntegerField(default=0)),
                ("lifetime_spend", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14)),
                ("tier", models.CharField(choices=TIER_CHOICES, default="bronze", max_length=20)),
                ("referral_code", models.CharField(max_length=32, unique=True)),
                ("referral_count", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("last_activity_at", models.DateTimeField(auto_now=True)),
                (
                    "referred_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="referred_accounts",
                        to="loyalty.loyaltyaccount",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(current_balance__gte=0), name="loyalty_account_balance_non_negative"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="PointTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("points", models.IntegerField()),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[
                            ("earn", "Earn Points"),
                            ("redeem", "Redeem Points"),
                            ("expire", "Expire Points"),
                            ("adjust", "Manual Adjustment"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("purchase", "Purchase"),
                            ("review", "Product review"),
                            ("referral", "Referral"),
                            ("signup_bonus", "Signup bonus"),
                            ("birthday", "Birthday bonus"),
                            ("redemption", "Reward redemption"),
                            ("expiration", "Point expiration"),
                            ("admin_adjustment", "Admin adjustment"),
                        ],
                        max_length=30,
                    ),
                ),
                ("reference_id", models.CharField(blank=True, max_length=255, null=True)),
                ("description", models.TextField(blank=True)),
                (
                    "created_at",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now, editable=False),
                ),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="loyalty.loyaltyaccount",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("transaction_type", "earn"), ("reference_id__isnull", False)),
                        fields=("account", "transaction_type", "reference_id"),
                        name="unique_earn_per_reference",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="EarnBatch",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("points", models.PositiveIntegerField()),
                ("remaining", models.PositiveIntegerField()),
                ("earned_at", models.DateTimeField(db_index=True)),
                ("expired_at", models.DateTimeField(blank=True, null=True)),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="earn_batches",
                        to="loyalty.loyaltyaccount",
                    ),
                ),
                (
                    "transaction",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="earn_batch",
                        to="loyalty.pointtransaction",
                    ),
                ),
            ],
            options={
                "ordering": ["earned_at", "id"],
                "indexes": [models.Index(fields=["account", "earned_at"], name="loyalty_batch_account_age")],
            },
        ),
        migrations.CreateModel(
            name="Reward",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("reward_type", models.CharField(choices=REWARD_TYPES, max_length=30)),
                ("point_cost", models.PositiveIntegerField()),
                ("value", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12)),
                ("min_tier", models.CharField(blank=True, choices=TIER_CHOICES, max_length=20, null=True)),
                ("stock_limit", models.PositiveIntegerField(blank=True, null=True)),
                ("stock_remaining", models.PositiveIntegerField(blank=True, null=True)),
                ("expiry_days", models.PositiveIntegerField(default=30)),
                ("terms", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name="RedeemedReward",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("reward_name", models.CharField(max_length=255)),
                ("reward_type", models.CharField(choices=REWARD_TYPES, max_length=30)),
                ("reward_value", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12)),
                ("code", models.CharField(max_length=32, unique=True)),
                ("points_spent", models.PositiveIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("used", "Used"), ("expired", "Expired")],
                        db_index=True,
                        default="active",
                        max_length=20,
                    ),
                ),
                ("redeemed_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("expires_at", models.DateTimeField()),
                ("used_at", models.DateTimeField(blank=True, null=True)),
                ("used_order_id", models.CharField(blank=True, max_length=255, null=True)),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redeemed_rewards",
                        to="loyalty.loyaltyaccount",
                    ),
                ),
                (
                    "reward",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="redemptions",
                        to="loyalty.reward",
                    ),
                ),
                (
                    "transaction",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redeemed_reward",
                        to="loyalty.pointtransaction",
                    ),
                ),
            ],
            options={"ordering": ["-redeemed_at"]},
        ),
        migrations.CreateModel(
            name="Referral",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("referee_email", models.EmailField(max_length=254, unique=True)),
                ("referee_name", models.CharField(blank=True, max_length=255)),
                ("code", models.CharField(max_length=32)),
                ("points_awarded", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                (
                    "referrer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="referrals_made",
                        to="loyalty.loyaltyaccount",
                    ),
                ),
                (
                    "transaction",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="referral",
                        to="loyalty.pointtransaction",
                    ),
                ),
            ],
        ),
    ]
