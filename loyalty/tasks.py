import logging

from celery import shared_task
from django.db import DatabaseError
from django.utils import timezone

from loyalty.expiration import ExpirationService
from loyalty.services import LedgerService

logger = logging.getLogger(__name__)


@shared_task
def expire_points():
    """
    Periodic expiration sweep. Scheduled daily by Celery beat.
    A failure on one account is logged and the pass moves on to the next one.
    """
    now = timezone.now()
    service = ExpirationService()

    logger.info("Starting points expiration sweep (cutoff %s)", service.expiration_cutoff(now))

    processed_count = 0
    failed_count = 0
    expired_points_total = 0

    # Ids are materialized up front because the sweep writes to the tables it scans.
    for account_id in service.accounts_with_expirable_points(now):
        try:
            expired = service.expire_account(account_id, now=now)
            if expired > 0:
                expired_points_total += expired
            processed_count += 1
        except Exception:
            failed_count += 1
            logger.exception("Error expiring points for account %s", account_id)

    expired_codes = service.expire_stale_redemptions(now)

    return (
        f"Finished. Processed {processed_count} accounts. Failed: {failed_count}. "
        f"Total expired: {expired_points_total}. Expired codes: {expired_codes}"
    )


@shared_task(bind=True, max_retries=5, default_retry_delay=30)
def award_purchase_points_task(self, customer_id, email, name, order_total, order_id):
    """
    Asynchronous award for checkout: storage errors are retried, and once the
    retries are exhausted the order is logged for manual reconciliation instead
    of failing the (already completed) order.
    """
    try:
        transaction = LedgerService().award_purchase_points(customer_id, email, name, order_total, order_id)
    except DatabaseError as exc:
        if self.request.retries >= self.max_retries:
            logger.error(
                "Could not award points for order %s (%s) after %s retries; manual reconciliation needed",
                order_id,
                email,
                self.request.retries,
            )
            return None
        raise self.retry(exc=exc)

    return transaction.pk if transaction else None
