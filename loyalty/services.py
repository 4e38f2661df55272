"""
Service layer for Loyalty business logic.
Handles the configuration store, the account registry and the transaction ledger.
"""

import logging
from datetime import date
from decimal import ROUND_FLOOR, Decimal
from typing import Optional

from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Sum
from django.utils import timezone

from loyalty.codes import generate_referral_code
from loyalty.exceptions import ConcurrentModificationError, InsufficientPointsError, NotFoundError
from loyalty.models import EarnBatch, LoyaltyAccount, LoyaltyConfig, PointTransaction, Reward, Tier
from loyalty.tiers import compute_tier

logger = logging.getLogger(__name__)

CONFIG_CACHE_KEY = "loyalty:config"
CONFIG_CACHE_TIMEOUT = 60 * 15


def get_loyalty_config() -> LoyaltyConfig:
    """
    Returns the configuration singleton, served from cache when possible.
    The cache entry is dropped by a post_save signal whenever an admin edits it.
    """
    config = cache.get(CONFIG_CACHE_KEY)
    if config is None:
        config = LoyaltyConfig.load()
        cache.set(CONFIG_CACHE_KEY, config, timeout=CONFIG_CACHE_TIMEOUT)
    return config


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


# ---------------------------------------------------------------------------
# Account registry
# ---------------------------------------------------------------------------


def get_account(email: str) -> LoyaltyAccount:
    try:
        return LoyaltyAccount.objects.get(customer_email=normalize_email(email))
    except LoyaltyAccount.DoesNotExist:
        raise NotFoundError("Customer loyalty account not found.") from None


def lock_account(email: str) -> LoyaltyAccount:
    """
    Fetches the account row with a row lock. Must be called inside transaction.atomic().
    """
    try:
        return LoyaltyAccount.objects.select_for_update().get(customer_email=normalize_email(email))
    except LoyaltyAccount.DoesNotExist:
        raise NotFoundError("Customer loyalty account not found.") from None


def get_or_create_account(customer_id, email: str, name: str = "") -> tuple[LoyaltyAccount, bool]:
    """
    Returns (account, created). Accounts are created lazily on the first qualifying event.
    """
    email = normalize_email(email)
    account = LoyaltyAccount.objects.filter(customer_email=email).first()
    if account:
        return account, False

    try:
        with transaction.atomic():
            account = LoyaltyAccount.objects.create(
                customer_id=str(customer_id or ""),
                customer_email=email,
                customer_name=name or "",
                referral_code=generate_referral_code(customer_id),
            )
    except IntegrityError:
        # Another request created the same account (or drew the same referral code) first.
        account = LoyaltyAccount.objects.filter(customer_email=email).first()
        if account is None:
            raise ConcurrentModificationError("Could not create the loyalty account, please retry.") from None
        return account, False

    logger.info("Created loyalty account for %s", email)
    return account, True


# ---------------------------------------------------------------------------
# Transaction ledger
# ---------------------------------------------------------------------------

DEFAULT_SOURCES = {
    PointTransaction.EARN: PointTransaction.SOURCE_PURCHASE,
    PointTransaction.REDEEM: PointTransaction.SOURCE_REDEMPTION,
    PointTransaction.EXPIRE: PointTransaction.SOURCE_EXPIRATION,
    PointTransaction.ADJUST: PointTransaction.SOURCE_ADMIN,
}


class LedgerService:
    """
    Encapsulates the rules for earning and spending points.
    Every balance change goes through append_transaction / append_locked.
    """

    @transaction.atomic
    def append_transaction(
        self,
        email: str,
        transaction_type: str,
        points: int,
        description: str = "",
        reference_id: Optional[str] = None,
        source: Optional[str] = None,
        now=None,
    ) -> PointTransaction:
        """
        Safely appends a point transaction to the customer's ledger.

        Args:
            email: Owner of the account.
            transaction_type: One of PointTransaction.TRANSACTION_TYPES.
            points: Signed amount (positive to credit, negative to debit).
            description: Reason for the transaction.
            reference_id: Order id or other idempotency key.
            source: Optional override of the source (inferred from the type otherwise).

        Returns:
            The created Transaction object, or the existing one for a repeated earn.
        """
        account = lock_account(email)
        return self.append_locked(
            account,
            transaction_type,
            points,
            description=description,
            reference_id=reference_id,
            source=source,
            now=now,
        )

    def append_locked(
        self,
        account: LoyaltyAccount,
        transaction_type: str,
        points: int,
        description: str = "",
        reference_id: Optional[str] = None,
        source: Optional[str] = None,
        now=None,
        batch: Optional[EarnBatch] = None,
    ) -> PointTransaction:
        """
        Appends to the ledger of an account the caller has already locked
        (select_for_update inside the current atomic block).

        `batch` pins the earn batch a debit consumes first; expiration uses it.
        """
        self._check_sign(transaction_type, points)

        # 1. Idempotency: an earn for the same reference is awarded only once.
        if transaction_type == PointTransaction.EARN and reference_id:
            existing = account.transactions.filter(
                transaction_type=PointTransaction.EARN, reference_id=reference_id
            ).first()
            if existing:
                logger.info("Skipping duplicate earn %s for %s", reference_id, account.customer_email)
                return existing

        # 2. Validation for spending
        if points < 0 and account.current_balance + points < 0:
            raise InsufficientPointsError(
                f"Insufficient points. Balance: {account.current_balance}, Required: {abs(points)}"
            )

        # 3. Create Transaction
        created_at = now or timezone.now()
        new_transaction = PointTransaction.objects.create(
            account=account,
            points=points,
            transaction_type=transaction_type,
            source=source or DEFAULT_SOURCES[transaction_type],
            reference_id=reference_id,
            description=description,
            created_at=created_at,
        )

        # 4. Update cached totals and the FIFO batch queue
        if points > 0:
            account.total_points_earned += points
            EarnBatch.objects.create(
                account=account,
                transaction=new_transaction,
                points=points,
                remaining=points,
                earned_at=created_at,
            )
        else:
            if transaction_type == PointTransaction.EXPIRE:
                account.total_points_expired += -points
            else:
                account.total_points_redeemed += -points
            self._consume_batches(account, -points, batch)

        account.current_balance += points
        account.save(
            update_fields=[
                "current_balance",
                "total_points_earned",
                "total_points_redeemed",
                "total_points_expired",
                "last_activity_at",
            ]
        )
        return new_transaction

    def _check_sign(self, transaction_type, points):
        if transaction_type not in DEFAULT_SOURCES:
            raise ValueError(f"Unknown transaction type: {transaction_type}")
        if points == 0:
            raise ValueError("A transaction must move at least one point.")
        if transaction_type == PointTransaction.EARN and points < 0:
            raise ValueError("Earn transactions must be positive.")
        if transaction_type in (PointTransaction.REDEEM, PointTransaction.EXPIRE) and points > 0:
            raise ValueError(f"{transaction_type.capitalize()} transactions must be negative.")

    def _consume_batches(self, account, amount, batch=None):
        """
        Consumes `amount` points from the account's earn batches, oldest first.
        """
        if batch is not None:
            taken = min(batch.remaining, amount)
            batch.remaining -= taken
            batch.save(update_fields=["remaining"])
            amount -= taken

        if amount > 0:
            batches = account.earn_batches.filter(remaining__gt=0).order_by("earned_at", "id")
            for candidate in batches:
                taken = min(candidate.remaining, amount)
                candidate.remaining -= taken
                candidate.save(update_fields=["remaining"])
                amount -= taken
                if amount == 0:
                    break

        if amount > 0:
            logger.warning("Earn batches of %s did not cover a debit; %s points unmatched", account.customer_email, amount)

    # -----------------------------------------------------------------------
    # Event handlers called by collaborators
    # -----------------------------------------------------------------------

    def award_purchase_points(
        self, customer_id, email: str, name: str, order_total, order_id: str, now=None
    ) -> Optional[PointTransaction]:
        """
        Awards points for a completed order and recomputes the tier.
        A repeated call for the same order returns the original transaction.
        """
        config = get_loyalty_config()
        if not config.program_active:
            return None

        order_total = Decimal(str(order_total))
        order_id = str(order_id)
        # Namespaced so order ids never collide with other earn references.
        reference_id = f"order:{order_id}"
        get_or_create_account(customer_id, email, name)

        with transaction.atomic():
            account = lock_account(email)

            existing = account.transactions.filter(
                transaction_type=PointTransaction.EARN, reference_id=reference_id
            ).first()
            if existing:
                logger.info("Order %s already awarded to %s", order_id, account.customer_email)
                return existing

            # The multiplier of the tier held before this order counts.
            multiplier = config.multiplier_for(account.tier)
            raw_points = order_total * config.points_per_ksh * multiplier
            points = int(raw_points.to_integral_value(rounding=ROUND_FLOOR))
            if points <= 0:
                return None

            previous_tier = account.tier
            account.lifetime_spend += order_total
            account.tier = compute_tier(account.lifetime_spend, config.tier_thresholds)
            account.save(update_fields=["lifetime_spend", "tier"])
            if account.tier != previous_tier:
                logger.info("Tier of %s changed from %s to %s", account.customer_email, previous_tier, account.tier)

            description = (
                f"Earned {points} points from order #{order_id[-6:]} ({multiplier}x {previous_tier} tier bonus)"
            )
            return self.append_locked(
                account,
                PointTransaction.EARN,
                points,
                description=description,
                reference_id=reference_id,
                source=PointTransaction.SOURCE_PURCHASE,
                now=now,
            )

    def award_review_points(
        self, customer_id, email: str, name: str, product_id, product_name: str = "", now=None
    ) -> Optional[PointTransaction]:
        """
        Awards points for the first approved review of a product by a customer.
        """
        config = get_loyalty_config()
        if not config.program_active or config.review_points <= 0:
            return None

        get_or_create_account(customer_id, email, name)
        label = product_name or product_id
        return self.append_transaction(
            email,
            PointTransaction.EARN,
            config.review_points,
            description=f'Earned {config.review_points} points for reviewing "{label}"',
            reference_id=f"review:{product_id}",
            source=PointTransaction.SOURCE_REVIEW,
            now=now,
        )

    def award_birthday_bonus(
        self, customer_id, email: str, name: str, year: Optional[int] = None, now=None
    ) -> Optional[PointTransaction]:
        """
        Awards the birthday bonus at most once per calendar year.
        """
        config = get_loyalty_config()
        if not config.program_active or config.birthday_bonus_points <= 0:
            return None

        year = year or date.today().year
        get_or_create_account(customer_id, email, name)
        return self.append_transaction(
            email,
            PointTransaction.EARN,
            config.birthday_bonus_points,
            description=f"Happy birthday! {config.birthday_bonus_points} bonus points",
            reference_id=f"birthday:{year}",
            source=PointTransaction.SOURCE_BIRTHDAY,
            now=now,
        )

    def adjust_points(self, email: str, points: int, description: str, now=None) -> PointTransaction:
        """
        Manual correction. Credits or debits the account with an `adjust` entry.
        """
        tx = self.append_transaction(
            email,
            PointTransaction.ADJUST,
            points,
            description=description,
            source=PointTransaction.SOURCE_ADMIN,
            now=now,
        )
        logger.info("Adjusted %s by %s points: %s", tx.account.customer_email, points, description)
        return tx


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


def get_loyalty_stats(top=10) -> dict:
    """
    Aggregated program figures for the admin dashboard.
    """
    accounts = LoyaltyAccount.objects.all()
    totals = accounts.aggregate(
        members=Count("id"),
        issued=Sum("total_points_earned"),
        redeemed=Sum("total_points_redeemed"),
        expired=Sum("total_points_expired"),
        average=Avg("current_balance"),
    )
    issued = totals["issued"] or 0
    redeemed = totals["redeemed"] or 0

    distribution = {tier: 0 for tier in Tier.values}
    for row in accounts.values("tier").annotate(count=Count("id")):
        distribution[row["tier"]] = row["count"]

    top_earners = [
        {
            "customer_name": account.customer_name or account.customer_email.split("@")[0],
            "customer_email": account.customer_email,
            "points": account.current_balance,
        }
        for account in accounts.order_by("-current_balance", "id")[:top]
    ]

    return {
        "total_members": totals["members"],
        "total_points_issued": issued,
        "total_points_redeemed": redeemed,
        "total_points_expired": totals["expired"] or 0,
        "active_rewards": Reward.objects.filter(is_active=True).count(),
        "redemption_rate": round(redeemed / issued * 100, 2) if issued else 0,
        "average_point_balance": round(float(totals["average"] or 0), 2),
        "tier_distribution": distribution,
        "top_earners": top_earners,
    }
