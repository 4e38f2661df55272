"""
Expiration of aged points (FIFO earn batches) and of stale redemption codes.
"""

import logging
from typing import Optional

from dateutil.relativedelta import relativedelta
from django.db import transaction
from django.utils import timezone

from loyalty.models import EarnBatch, LoyaltyAccount, PointTransaction, RedeemedReward
from loyalty.services import LedgerService, get_loyalty_config

logger = logging.getLogger(__name__)


class ExpirationService:
    """
    Expires whole earn batches older than `point_expiration_months`.

    Batches are consumed oldest-first by every debit, so whatever is left in an
    aged batch is exactly the unspent part of those points.
    """

    def __init__(self, ledger: Optional[LedgerService] = None):
        self.ledger = ledger or LedgerService()

    def expiration_cutoff(self, now=None):
        now = now or timezone.now()
        return now - relativedelta(months=get_loyalty_config().point_expiration_months)

    def accounts_with_expirable_points(self, now=None) -> list[int]:
        cutoff = self.expiration_cutoff(now)
        return list(
            EarnBatch.objects.filter(remaining__gt=0, earned_at__lt=cutoff)
            .order_by("account_id")
            .values_list("account_id", flat=True)
            .distinct()
        )

    def expire_account(self, account_id: int, now=None) -> int:
        """
        Expires every aged batch of one account.

        Returns:
            int: The amount of points expired (positive integer).
        """
        now = now or timezone.now()
        cutoff = self.expiration_cutoff(now)

        batch_ids = list(
            EarnBatch.objects.filter(account_id=account_id, remaining__gt=0, earned_at__lt=cutoff)
            .order_by("earned_at", "id")
            .values_list("id", flat=True)
        )

        expired_total = 0
        for batch_id in batch_ids:
            expired_total += self._expire_batch(account_id, batch_id, now)
        return expired_total

    @transaction.atomic
    def _expire_batch(self, account_id, batch_id, now) -> int:
        # One batch per lock: concurrent awards and redemptions only wait for a single step.
        account = LoyaltyAccount.objects.select_for_update().get(pk=account_id)
        batch = EarnBatch.objects.select_for_update().get(pk=batch_id)
        if batch.remaining == 0:
            return 0

        amount = min(batch.remaining, account.current_balance)
        if amount > 0:
            self.ledger.append_locked(
                account,
                PointTransaction.EXPIRE,
                -amount,
                description=f"Expiration of points earned on {batch.earned_at:%Y-%m-%d}",
                reference_id=f"batch:{batch.pk}",
                source=PointTransaction.SOURCE_EXPIRATION,
                now=now,
                batch=batch,
            )
            logger.info("Expired %s points of %s (batch %s)", amount, account.customer_email, batch.pk)

        batch.remaining = 0
        batch.expired_at = now
        batch.save(update_fields=["remaining", "expired_at"])
        return amount

    def expire_stale_redemptions(self, now=None) -> int:
        """
        Moves active redemption codes past their expiry date to `expired`.
        """
        now = now or timezone.now()
        return RedeemedReward.objects.filter(status=RedeemedReward.STATUS_ACTIVE, expires_at__lte=now).update(
            status=RedeemedReward.STATUS_EXPIRED
        )
