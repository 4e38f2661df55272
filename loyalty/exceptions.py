"""
Error taxonomy for the loyalty ledger.
Each error carries a stable `code` that API clients can switch on.
"""


class LoyaltyError(Exception):
    code = "loyalty_error"
    default_message = "Loyalty operation failed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(LoyaltyError):
    code = "not_found"
    default_message = "Not found."


class TierTooLowError(LoyaltyError):
    code = "tier_too_low"
    default_message = "Your tier is too low for this reward."


class OutOfStockError(LoyaltyError):
    code = "out_of_stock"
    default_message = "This reward is out of stock."


class InsufficientPointsError(LoyaltyError):
    code = "insufficient_points"
    default_message = "Insufficient points."


class InvalidOrExpiredCodeError(LoyaltyError):
    code = "invalid_or_expired_code"
    default_message = "Invalid or expired code."


class ConcurrentModificationError(LoyaltyError):
    code = "concurrent_modification_lost"
    default_message = "The record was modified concurrently. Please try again."
