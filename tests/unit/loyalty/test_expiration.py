"""
Unit tests for FIFO point expiration and stale redemption codes.
"""

from datetime import timedelta

from django.utils import timezone

from loyalty.expiration import ExpirationService
from loyalty.models import EarnBatch, PointTransaction, RedeemedReward
from loyalty.redemption import RedemptionService
from loyalty.services import LedgerService
from tests.factories.loyalty import LoyaltyAccountFactory, RewardFactory


class TestExpireAccount:
    def setup_method(self):
        self.ledger = LedgerService()
        self.service = ExpirationService(self.ledger)
        self.now = timezone.now()

    def earn(self, account, points, days_ago):
        return self.ledger.append_transaction(
            account.customer_email, PointTransaction.EARN, points, now=self.now - timedelta(days=days_ago)
        )

    def test_only_batches_older_than_window_expire(self):
        account = LoyaltyAccountFactory()
        old = self.earn(account, 100, days_ago=400)
        self.earn(account, 50, days_ago=30)

        expired = self.service.expire_account(account.pk, now=self.now)

        account.refresh_from_db()
        batch = EarnBatch.objects.get(transaction=old)
        assert expired == 100
        assert account.current_balance == 50
        assert account.total_points_expired == 100
        assert batch.remaining == 0
        assert batch.expired_at == self.now
        expire_tx = account.transactions.get(transaction_type=PointTransaction.EXPIRE)
        assert expire_tx.points == -100
        assert expire_tx.reference_id == f"batch:{batch.pk}"

    def test_spent_points_are_taken_from_the_oldest_batch(self):
        """
        Scenario: 100 points earned 13 months ago, 100 earned last month, 80 spent.
        Expected: only the 20 unspent points of the old batch expire.
        """
        account = LoyaltyAccountFactory()
        self.earn(account, 100, days_ago=400)
        self.earn(account, 100, days_ago=30)
        self.ledger.append_transaction(account.customer_email, PointTransaction.REDEEM, -80)

        expired = self.service.expire_account(account.pk, now=self.now)

        account.refresh_from_db()
        assert expired == 20
        assert account.current_balance == 100

    def test_running_twice_expires_nothing_more(self):
        account = LoyaltyAccountFactory()
        self.earn(account, 100, days_ago=400)

        self.service.expire_account(account.pk, now=self.now)
        second = self.service.expire_account(account.pk, now=self.now)

        account.refresh_from_db()
        assert second == 0
        assert account.current_balance == 0
        assert account.transactions.filter(transaction_type=PointTransaction.EXPIRE).count() == 1

    def test_accounts_with_expirable_points(self):
        stale = LoyaltyAccountFactory()
        fresh = LoyaltyAccountFactory()
        self.earn(stale, 10, days_ago=400)
        self.earn(fresh, 10, days_ago=10)

        assert self.service.accounts_with_expirable_points(self.now) == [stale.pk]


class TestExpireStaleRedemptions:
    def test_past_due_active_codes_become_expired(self):
        account = LoyaltyAccountFactory()
        LedgerService().append_transaction(account.customer_email, PointTransaction.EARN, 500)
        reward = RewardFactory(point_cost=100, expiry_days=30)
        redeemed_on = timezone.now() - timedelta(days=40)
        result = RedemptionService().redeem_reward(reward.pk, "", account.customer_email, now=redeemed_on)

        count = ExpirationService().expire_stale_redemptions()

        assert count == 1
        assert RedeemedReward.objects.get(pk=result.redeemed_reward.pk).status == RedeemedReward.STATUS_EXPIRED


class TestBalanceIdentity:
    """
    The cached balance must equal earned - redeemed - expired, and the sum of the
    ledger, after every kind of movement.
    """

    def assert_consistent(self, account):
        account.refresh_from_db()
        ledger_sum = sum(account.transactions.values_list("points", flat=True))
        assert account.current_balance == (
            account.total_points_earned - account.total_points_redeemed - account.total_points_expired
        )
        assert account.current_balance == ledger_sum
        assert account.current_balance >= 0

    def test_identity_holds_across_a_mixed_history(self):
        ledger = LedgerService()
        now = timezone.now()
        account = LoyaltyAccountFactory()
        email = account.customer_email

        ledger.append_transaction(email, PointTransaction.EARN, 300, now=now - timedelta(days=400))
        self.assert_consistent(account)

        ledger.append_transaction(email, PointTransaction.EARN, 200, now=now - timedelta(days=30))
        self.assert_consistent(account)

        RedemptionService().redeem_reward(RewardFactory(point_cost=100).pk, account.customer_id, email)
        self.assert_consistent(account)

        ledger.adjust_points(email, 50, "Goodwill credit")
        self.assert_consistent(account)

        ledger.adjust_points(email, -30, "Correction")
        self.assert_consistent(account)

        expired = ExpirationService(ledger).expire_account(account.pk, now=now)
        self.assert_consistent(account)

        ledger.append_transaction(email, PointTransaction.EARN, 70, now=now)
        self.assert_consistent(account)

        assert expired == 170
        assert account.current_balance == 320
