"""
Reward catalogue queries and the redemption engine.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from loyalty.codes import generate_redemption_code
from loyalty.exceptions import (
    ConcurrentModificationError,
    InsufficientPointsError,
    InvalidOrExpiredCodeError,
    LoyaltyError,
    NotFoundError,
    OutOfStockError,
    TierTooLowError,
)
from loyalty.models import PointTransaction, RedeemedReward, Reward
from loyalty.services import LedgerService, lock_account, normalize_email
from loyalty.tiers import tier_meets

logger = logging.getLogger(__name__)


@dataclass
class RedemptionResult:
    success: bool
    message: str
    redeemed_reward: Optional[RedeemedReward] = None
    error_code: Optional[str] = None


@dataclass
class CodeValidation:
    valid: bool
    message: str = ""
    redeemed_reward: Optional[RedeemedReward] = None


def get_active_rewards(tier: Optional[str] = None) -> list[Reward]:
    """
    Rewards a customer of `tier` can currently redeem: active, tier requirement met,
    and unlimited or still in stock. Without a tier, every active in-stock reward.
    """
    rewards = Reward.objects.filter(is_active=True).order_by("point_cost", "id")
    return [reward for reward in rewards if reward.in_stock and (tier is None or tier_meets(tier, reward.min_tier))]


def get_active_redemptions(email: str) -> list[RedeemedReward]:
    return list(
        RedeemedReward.objects.filter(
            account__customer_email=normalize_email(email),
            status=RedeemedReward.STATUS_ACTIVE,
            expires_at__gt=timezone.now(),
        )
    )


class RedemptionService:
    """
    Validates and executes reward redemptions and the lifecycle of their codes.
    """

    def __init__(self, ledger: Optional[LedgerService] = None):
        self.ledger = ledger or LedgerService()

    def redeem_reward(self, reward_id, customer_id, customer_email: str, now=None) -> RedemptionResult:
        """
        Exchanges points for a reward.

        Every failure is user-recoverable and comes back as an unsuccessful result
        carrying the error code; nothing is written in that case.
        """
        try:
            redeemed = self._redeem(reward_id, customer_id, customer_email, now or timezone.now())
        except LoyaltyError as e:
            logger.info("Redemption of reward %s by %s refused: %s", reward_id, customer_email, e.code)
            return RedemptionResult(success=False, message=e.message, error_code=e.code)

        logger.info("Reward %s redeemed by %s with code %s", reward_id, customer_email, redeemed.code)
        return RedemptionResult(success=True, message="Reward redeemed successfully!", redeemed_reward=redeemed)

    @transaction.atomic
    def _redeem(self, reward_id, customer_id, customer_email, now) -> RedeemedReward:
        # 1. Validate Reward
        reward = Reward.objects.filter(pk=reward_id).first()
        if reward is None:
            raise NotFoundError("Reward not found.")
        if not reward.is_active:
            raise NotFoundError("Reward is no longer active.")

        # 2. Validate Customer (row lock serializes all point movements of this account)
        account = lock_account(customer_email)
        if customer_id and account.customer_id and account.customer_id != str(customer_id):
            raise NotFoundError("Customer loyalty account not found.")

        if not tier_meets(account.tier, reward.min_tier):
            raise TierTooLowError(f"This reward requires {reward.min_tier} tier or higher.")
        if not reward.in_stock:
            raise OutOfStockError()
        if account.current_balance < reward.point_cost:
            raise InsufficientPointsError(
                f"Insufficient points. You need {reward.point_cost} points but have {account.current_balance}."
            )

        # 3. Compare-and-decrement on the shared stock counter.
        # This row is never locked together with a single account, so customers
        # redeeming the same reward only contend here.
        if reward.is_stock_limited:
            decremented = Reward.objects.filter(pk=reward.pk, stock_remaining__gt=0).update(
                stock_remaining=F("stock_remaining") - 1
            )
            if not decremented:
                raise OutOfStockError()

        # 4. Debit and issue the code. Any error from here on rolls back the
        # whole atomic block, stock decrement included.
        code = generate_redemption_code(reward.reward_type)
        debit = self.ledger.append_locked(
            account,
            PointTransaction.REDEEM,
            -reward.point_cost,
            description=f"Redeemed {reward.name}",
            reference_id=code,
            source=PointTransaction.SOURCE_REDEMPTION,
            now=now,
        )

        try:
            with transaction.atomic():
                return RedeemedReward.objects.create(
                    account=account,
                    reward=reward,
                    reward_name=reward.name,
                    reward_type=reward.reward_type,
                    reward_value=reward.value,
                    code=code,
                    points_spent=reward.point_cost,
                    status=RedeemedReward.STATUS_ACTIVE,
                    redeemed_at=now,
                    expires_at=now + timedelta(days=reward.expiry_days),
                    transaction=debit,
                )
        except IntegrityError:
            # Another redemption claimed the same code between the check and the insert.
            raise ConcurrentModificationError("Could not allocate a unique reward code. Please try again.") from None

    def validate_reward_code(self, code: str, email: str, now=None) -> CodeValidation:
        """
        A code is valid when it exists, belongs to `email`, is active and has not expired.
        """
        now = now or timezone.now()
        redeemed = (
            RedeemedReward.objects.select_related("account")
            .filter(code=code, account__customer_email=normalize_email(email))
            .first()
        )

        if redeemed is None:
            return CodeValidation(valid=False, message="Invalid reward code")
        if redeemed.status == RedeemedReward.STATUS_USED:
            return CodeValidation(valid=False, message="This reward has already been used", redeemed_reward=redeemed)
        if redeemed.status == RedeemedReward.STATUS_EXPIRED:
            return CodeValidation(valid=False, message="This reward has expired", redeemed_reward=redeemed)
        if now >= redeemed.expires_at:
            self._expire(redeemed)
            return CodeValidation(valid=False, message="This reward has expired", redeemed_reward=redeemed)

        return CodeValidation(valid=True, message="Reward code is valid", redeemed_reward=redeemed)

    def mark_reward_as_used(self, code: str, order_id, now=None) -> RedeemedReward:
        """
        Consumes a redemption code on an order.

        Repeating the call with the same order is a no-op; anything else on a
        code that is not active raises InvalidOrExpiredCodeError.
        """
        now = now or timezone.now()
        order_id = str(order_id)
        expired = False

        with transaction.atomic():
            redeemed = RedeemedReward.objects.select_for_update().filter(code=code).first()
            if redeemed is None:
                raise InvalidOrExpiredCodeError("Invalid reward code.")

            if redeemed.status == RedeemedReward.STATUS_USED:
                if redeemed.used_order_id == order_id:
                    return redeemed
                raise InvalidOrExpiredCodeError("This reward has already been used.")
            if redeemed.status == RedeemedReward.STATUS_EXPIRED:
                raise InvalidOrExpiredCodeError("This reward has expired.")

            if now >= redeemed.expires_at:
                redeemed.status = RedeemedReward.STATUS_EXPIRED
                redeemed.save(update_fields=["status"])
                expired = True
            else:
                redeemed.status = RedeemedReward.STATUS_USED
                redeemed.used_at = now
                redeemed.used_order_id = order_id
                redeemed.save(update_fields=["status", "used_at", "used_order_id"])

        if expired:
            raise InvalidOrExpiredCodeError("This reward has expired.")

        logger.info("Reward code %s used on order %s", code, order_id)
        return redeemed

    def _expire(self, redeemed):
        updated = RedeemedReward.objects.filter(pk=redeemed.pk, status=RedeemedReward.STATUS_ACTIVE).update(
            status=RedeemedReward.STATUS_EXPIRED
        )
        if updated:
            redeemed.status = RedeemedReward.STATUS_EXPIRED
