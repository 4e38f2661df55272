"""
Referral tracking: referral codes, referrer credits and signup enrolment.
"""

import logging
from typing import Optional

from django.db import IntegrityError, transaction

from loyalty.codes import generate_referral_code
from loyalty.exceptions import ConcurrentModificationError, InvalidOrExpiredCodeError, NotFoundError
from loyalty.models import LoyaltyAccount, PointTransaction, Referral
from loyalty.services import LedgerService, get_loyalty_config, get_or_create_account, lock_account, normalize_email

logger = logging.getLogger(__name__)

__all__ = ["ReferralService", "generate_referral_code", "validate_referral_code"]


def validate_referral_code(code: str) -> Optional[LoyaltyAccount]:
    """
    Returns the account owning `code`, or None.
    """
    if not code:
        return None
    return LoyaltyAccount.objects.filter(referral_code=code.strip().upper()).first()


class ReferralService:
    def __init__(self, ledger: Optional[LedgerService] = None):
        self.ledger = ledger or LedgerService()

    def record_referral(self, code: str, referee_email: str, referee_name: str = "", now=None) -> Referral:
        """
        Credits the owner of `code` for a referred signup.

        Exactly one Referral (and one credit) exists per referred customer; repeated
        deliveries of the same signup event return the existing record.
        """
        referee_email = normalize_email(referee_email)

        existing = Referral.objects.filter(referee_email=referee_email).first()
        if existing:
            return existing

        referrer = validate_referral_code(code)
        if referrer is None:
            raise NotFoundError("Referral code not found.")
        if referrer.customer_email == referee_email:
            raise InvalidOrExpiredCodeError("You cannot use your own referral code.")

        config = get_loyalty_config()
        points = config.referral_points_referrer if config.program_active else 0

        try:
            with transaction.atomic():
                referrer = lock_account(referrer.customer_email)

                existing = Referral.objects.filter(referee_email=referee_email).first()
                if existing:
                    return existing

                credit = None
                if points > 0:
                    credit = self.ledger.append_locked(
                        referrer,
                        PointTransaction.EARN,
                        points,
                        description=f"Earned {points} points for referring {referee_name or referee_email}",
                        reference_id=f"referral:{referee_email}",
                        source=PointTransaction.SOURCE_REFERRAL,
                        now=now,
                    )

                referrer.referral_count += 1
                referrer.save(update_fields=["referral_count"])

                referral = Referral.objects.create(
                    referrer=referrer,
                    referee_email=referee_email,
                    referee_name=referee_name or "",
                    code=referrer.referral_code,
                    points_awarded=points,
                    transaction=credit,
                )
        except IntegrityError:
            # A concurrent delivery for the same referee committed first.
            existing = Referral.objects.filter(referee_email=referee_email).first()
            if existing is None:
                raise ConcurrentModificationError() from None
            return existing

        logger.info("Referral credited to %s for %s (%s points)", referrer.customer_email, referee_email, points)
        return referral

    def register_signup(
        self, customer_id, email: str, name: str = "", referral_code: Optional[str] = None, now=None
    ) -> LoyaltyAccount:
        """
        Enrols a new customer: creates the account, grants the signup bonus and,
        when a valid referral code is supplied, credits the referrer and the referee.
        """
        email = normalize_email(email)
        if referral_code and validate_referral_code(referral_code) is None:
            raise NotFoundError("Referral code not found.")

        config = get_loyalty_config()
        get_or_create_account(customer_id, email, name)

        if config.program_active and config.signup_bonus_points > 0:
            self.ledger.append_transaction(
                email,
                PointTransaction.EARN,
                config.signup_bonus_points,
                description="Welcome bonus for joining our loyalty program!",
                reference_id="signup",
                source=PointTransaction.SOURCE_SIGNUP,
                now=now,
            )

        if referral_code:
            referral = self.record_referral(referral_code, email, name, now=now)
            with transaction.atomic():
                account = lock_account(email)
                if account.referred_by_id is None:
                    account.referred_by = referral.referrer
                    account.save(update_fields=["referred_by"])
                if config.program_active and config.referral_points_referee > 0:
                    self.ledger.append_locked(
                        account,
                        PointTransaction.EARN,
                        config.referral_points_referee,
                        description=f"Earned {config.referral_points_referee} points for joining with a referral",
                        reference_id="referee-bonus",
                        source=PointTransaction.SOURCE_REFERRAL,
                        now=now,
                    )

        return LoyaltyAccount.objects.get(customer_email=email)
