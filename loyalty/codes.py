"""
Random code allocation for referral and redemption codes.
"""

import logging
import secrets
import string

from loyalty.exceptions import ConcurrentModificationError
from loyalty.models import LoyaltyAccount, RedeemedReward, Reward

logger = logging.getLogger(__name__)

ALPHABET = string.ascii_uppercase + string.digits
MAX_ATTEMPTS = 10

REDEMPTION_PREFIXES = {
    Reward.TYPE_DISCOUNT_PERCENTAGE: "DISC",
    Reward.TYPE_DISCOUNT_FIXED: "SAVE",
    Reward.TYPE_FREE_SHIPPING: "SHIP",
    Reward.TYPE_GIFT_PRODUCT: "GIFT",
    Reward.TYPE_EXCLUSIVE_ACCESS: "VIP",
}


def random_token(length: int = 8) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def generate_referral_code(customer_id=None) -> str:
    """
    Returns a referral code that no account holds yet.
    The unique constraint on LoyaltyAccount.referral_code catches the rare race
    where two signups draw the same code between this check and the insert.
    """
    for _ in range(MAX_ATTEMPTS):
        code = f"REF{random_token()}"
        if not LoyaltyAccount.objects.filter(referral_code=code).exists():
            return code
        logger.warning("Referral code collision for customer %s, retrying", customer_id)
    raise ConcurrentModificationError("Could not allocate a unique referral code.")


def generate_redemption_code(reward_type: str) -> str:
    prefix = REDEMPTION_PREFIXES.get(reward_type, "GIFT")
    for _ in range(MAX_ATTEMPTS):
        code = f"{prefix}{random_token()}"
        if not RedeemedReward.objects.filter(code=code).exists():
            return code
        logger.warning("Redemption code collision on %s, retrying", code)
    raise ConcurrentModificationError("Could not allocate a unique redemption code.")
