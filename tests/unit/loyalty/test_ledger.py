"""
Unit tests for the transaction ledger and the point-earning events.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from loyalty.exceptions import InsufficientPointsError, NotFoundError
from loyalty.models import EarnBatch, LoyaltyAccount, LoyaltyConfig, PointTransaction
from loyalty.services import LedgerService, get_or_create_account
from tests.factories.loyalty import LoyaltyAccountFactory


def assert_ledger_consistent(account):
    """
    The cached balance is always the sum of the account's ledger.
    """
    account.refresh_from_db()
    ledger_sum = sum(account.transactions.values_list("points", flat=True))
    assert account.current_balance == ledger_sum
    assert account.current_balance == sum(account.earn_batches.values_list("remaining", flat=True))


class TestAppendTransaction:
    """
    Tests for the single entry point that changes balances.
    """

    def setup_method(self):
        self.service = LedgerService()

    def test_earn_credits_balance_and_opens_batch(self):
        account = LoyaltyAccountFactory()

        tx = self.service.append_transaction(account.customer_email, PointTransaction.EARN, 100, "Bonus")

        account.refresh_from_db()
        assert tx.points == 100
        assert tx.source == PointTransaction.SOURCE_PURCHASE
        assert account.current_balance == 100
        assert account.total_points_earned == 100
        assert tx.earn_batch.remaining == 100
        assert_ledger_consistent(account)

    def test_debit_with_sufficient_balance(self):
        account = LoyaltyAccountFactory()
        self.service.append_transaction(account.customer_email, PointTransaction.EARN, 100, "Initial")

        tx = self.service.append_transaction(account.customer_email, PointTransaction.REDEEM, -30, "Coffee")

        account.refresh_from_db()
        assert tx.points == -30
        assert account.current_balance == 70
        assert account.total_points_redeemed == 30
        assert_ledger_consistent(account)

    def test_debit_beyond_balance_is_rejected_without_append(self):
        """
        Scenario: balance 50, debit of 100.
        Expected: InsufficientPointsError and nothing is written.
        """
        account = LoyaltyAccountFactory()
        self.service.append_transaction(account.customer_email, PointTransaction.EARN, 50, "Initial")

        with pytest.raises(InsufficientPointsError) as exc:
            self.service.append_transaction(account.customer_email, PointTransaction.REDEEM, -100, "Too much")

        assert "Balance: 50, Required: 100" in exc.value.message
        account.refresh_from_db()
        assert account.current_balance == 50
        assert account.transactions.count() == 1

    def test_earn_is_idempotent_per_reference(self):
        account = LoyaltyAccountFactory()

        first = self.service.append_transaction(
            account.customer_email, PointTransaction.EARN, 40, "Review", reference_id="review:1"
        )
        second = self.service.append_transaction(
            account.customer_email, PointTransaction.EARN, 40, "Review", reference_id="review:1"
        )

        account.refresh_from_db()
        assert first.pk == second.pk
        assert account.current_balance == 40

    @pytest.mark.parametrize(
        "transaction_type, points",
        [
            (PointTransaction.EARN, -10),
            (PointTransaction.REDEEM, 10),
            (PointTransaction.EXPIRE, 10),
            (PointTransaction.ADJUST, 0),
            ("bonus", 10),
        ],
    )
    def test_wrong_sign_or_type_is_rejected(self, transaction_type, points):
        account = LoyaltyAccountFactory()

        with pytest.raises(ValueError):
            self.service.append_transaction(account.customer_email, transaction_type, points)

    def test_unknown_account_raises_not_found(self):
        with pytest.raises(NotFoundError):
            self.service.append_transaction("ghost@example.com", PointTransaction.EARN, 10)

    def test_debits_consume_oldest_batches_first(self):
        account = LoyaltyAccountFactory()
        now = timezone.now()
        old = self.service.append_transaction(
            account.customer_email, PointTransaction.EARN, 100, now=now - timedelta(days=60)
        )
        new = self.service.append_transaction(account.customer_email, PointTransaction.EARN, 100, now=now)

        self.service.append_transaction(account.customer_email, PointTransaction.REDEEM, -130)

        assert EarnBatch.objects.get(transaction=old).remaining == 0
        assert EarnBatch.objects.get(transaction=new).remaining == 70
        assert_ledger_consistent(account)

    def test_transactions_are_immutable(self):
        account = LoyaltyAccountFactory()
        tx = self.service.append_transaction(account.customer_email, PointTransaction.EARN, 10)

        tx.points = 1000
        with pytest.raises(ValueError):
            tx.save()
        with pytest.raises(ValueError):
            tx.delete()


class TestAwardPurchasePoints:
    def setup_method(self):
        self.service = LedgerService()

    def test_order_awards_points_and_promotes_tier(self):
        """
        Scenario: bronze account, silver threshold 5000, 1 point per KSH.
        A 6000 KSH order awards 6000 points and promotes the customer to silver.
        """
        config = LoyaltyConfig.load()
        config.silver_threshold = Decimal("5000")
        config.save()

        tx = self.service.award_purchase_points("c-1", "Jane@Example.com", "Jane", Decimal("6000"), "ORD-1")

        account = LoyaltyAccount.objects.get(customer_email="jane@example.com")
        assert tx.points == 6000
        assert account.current_balance == 6000
        assert account.lifetime_spend == Decimal("6000")
        assert account.tier == "silver"
        assert "1.0x bronze tier bonus" in tx.description

    def test_tier_multiplier_applies_and_rounds_down(self):
        account = LoyaltyAccountFactory(tier="silver", lifetime_spend=Decimal("60000"))

        tx = self.service.award_purchase_points(
            account.customer_id, account.customer_email, "", Decimal("999"), "ORD-2"
        )

        # 999 * 1.25 = 1248.75
        assert tx.points == 1248

    def test_duplicate_order_is_not_awarded_twice(self):
        first = self.service.award_purchase_points("c-1", "jane@example.com", "Jane", 1000, "ORD-1")
        second = self.service.award_purchase_points("c-1", "jane@example.com", "Jane", 1000, "ORD-1")

        account = LoyaltyAccount.objects.get(customer_email="jane@example.com")
        assert first.pk == second.pk
        assert account.current_balance == 1000
        assert account.lifetime_spend == Decimal("1000")

    @pytest.mark.parametrize("order_id", ["signup", "referee-bonus", "review:1"])
    def test_order_ids_do_not_collide_with_other_earn_references(self, order_id):
        """
        Scenario: An order id equals the reference of another kind of earn on the same account.
        Expected: The order is still awarded, under its own order: reference.
        """
        account = LoyaltyAccountFactory(customer_email="jane@example.com")
        self.service.append_transaction(account.customer_email, PointTransaction.EARN, 100, reference_id=order_id)

        tx = self.service.award_purchase_points("c-1", "jane@example.com", "Jane", 1000, order_id)

        account.refresh_from_db()
        assert tx.points == 1000
        assert tx.reference_id == f"order:{order_id}"
        assert account.current_balance == 1100

    def test_inactive_program_awards_nothing(self):
        config = LoyaltyConfig.load()
        config.program_active = False
        config.save()

        result = self.service.award_purchase_points("c-1", "jane@example.com", "Jane", 1000, "ORD-1")

        assert result is None
        assert not LoyaltyAccount.objects.exists()

    def test_tiny_order_below_one_point_awards_nothing(self):
        result = self.service.award_purchase_points("c-1", "jane@example.com", "Jane", Decimal("0.50"), "ORD-1")

        assert result is None
        assert LoyaltyAccount.objects.get(customer_email="jane@example.com").current_balance == 0


class TestOtherEarnEvents:
    def setup_method(self):
        self.service = LedgerService()

    def test_review_points_once_per_product(self):
        self.service.award_review_points("c-1", "jane@example.com", "Jane", "P-1", "Kikoy")
        self.service.award_review_points("c-1", "jane@example.com", "Jane", "P-1", "Kikoy")
        self.service.award_review_points("c-1", "jane@example.com", "Jane", "P-2")

        account = LoyaltyAccount.objects.get(customer_email="jane@example.com")
        assert account.current_balance == 100
        assert account.transactions.filter(source=PointTransaction.SOURCE_REVIEW).count() == 2

    def test_birthday_bonus_once_per_year(self):
        self.service.award_birthday_bonus("c-1", "jane@example.com", "Jane", year=2025)
        self.service.award_birthday_bonus("c-1", "jane@example.com", "Jane", year=2025)
        self.service.award_birthday_bonus("c-1", "jane@example.com", "Jane", year=2026)

        assert LoyaltyAccount.objects.get(customer_email="jane@example.com").current_balance == 300

    def test_negative_adjustment_counts_as_redeemed(self):
        account = LoyaltyAccountFactory()
        self.service.append_transaction(account.customer_email, PointTransaction.EARN, 100)

        tx = self.service.adjust_points(account.customer_email, -40, "Correction")

        account.refresh_from_db()
        assert tx.transaction_type == PointTransaction.ADJUST
        assert tx.source == PointTransaction.SOURCE_ADMIN
        assert account.current_balance == 60
        assert account.total_points_redeemed == 40
        assert_ledger_consistent(account)


class TestAccountRegistry:
    def test_get_or_create_is_keyed_by_normalized_email(self):
        account, created = get_or_create_account("c-1", " Jane@Example.COM ", "Jane")
        again, created_again = get_or_create_account("c-1", "jane@example.com")

        assert created
        assert not created_again
        assert again.pk == account.pk
        assert account.referral_code.startswith("REF")
        assert account.current_balance == 0
