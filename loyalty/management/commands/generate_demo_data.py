"""
Custom management command to generate demo data.
"""

import random
from decimal import Decimal

from django.core.management import call_command
from django.core.management.base import BaseCommand

from loyalty.models import LoyaltyAccount
from loyalty.redemption import RedemptionService, get_active_rewards
from loyalty.referrals import ReferralService
from loyalty.services import LedgerService


class Command(BaseCommand):
    help = "Generates demo data for the loyalty ledger"

    def add_arguments(self, parser):
        parser.add_argument("--customers", type=int, default=100, help="Number of customers to generate")
        parser.add_argument("--orders", type=int, default=1000, help="Number of orders to generate")
        parser.add_argument("--redemptions", type=int, default=50, help="Number of redemption attempts")

    def handle(self, *args, **options):
        num_customers = options["customers"]
        num_orders = options["orders"]
        num_redemptions = options["redemptions"]

        self.stdout.write(
            f" Starting demo data generation (Customers: {num_customers}, Orders: {num_orders})..."
        )

        call_command("init_loyalty_program", stdout=self.stdout)

        ledger = LedgerService()
        referrals = ReferralService(ledger)
        redemptions = RedemptionService(ledger)

        # Everything goes through the services so balances, batches and tiers stay consistent.
        accounts = []
        for i in range(1, num_customers + 1):
            unique_id = f"{i}_{random.randint(1000, 9999)}"
            referral_code = None
            if accounts and random.random() < 0.2:
                referral_code = random.choice(accounts).referral_code
            account = referrals.register_signup(
                f"DEMO_USER_{unique_id}",
                f"customer_{unique_id}@example.com",
                f"Demo Customer {i}",
                referral_code=referral_code,
            )
            accounts.append(account)

        for n in range(num_orders):
            account = random.choice(accounts)
            order_total = Decimal(random.randint(500, 25000))
            ledger.award_purchase_points(
                account.customer_id, account.customer_email, account.customer_name, order_total, f"DEMO-ORDER-{n}"
            )

        redeemed = 0
        for _ in range(num_redemptions):
            account = LoyaltyAccount.objects.get(pk=random.choice(accounts).pk)
            options_for_tier = get_active_rewards(account.tier)
            if not options_for_tier:
                continue
            reward = random.choice(options_for_tier)
            result = redemptions.redeem_reward(reward.pk, account.customer_id, account.customer_email)
            if result.success:
                redeemed += 1

        self.stdout.write(
            self.style.SUCCESS(
                f" Done! Created {num_customers} customers, {num_orders} orders and {redeemed} redemptions."
            )
        )
