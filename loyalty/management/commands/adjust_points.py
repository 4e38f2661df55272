"""
Manual ledger correction from the command line.
"""

from django.core.management.base import BaseCommand, CommandError

from loyalty.exceptions import LoyaltyError
from loyalty.services import LedgerService


class Command(BaseCommand):
    help = "Credits (positive) or debits (negative) a customer's points with an adjustment entry"

    def add_arguments(self, parser):
        parser.add_argument("email", type=str)
        parser.add_argument("points", type=int)
        parser.add_argument("--reason", type=str, required=True, help="Shown in the customer's history")

    def handle(self, *args, **options):
        if options["points"] == 0:
            raise CommandError("Points must be non-zero.")

        try:
            tx = LedgerService().adjust_points(options["email"], options["points"], options["reason"])
        except LoyaltyError as e:
            raise CommandError(e.message) from e

        self.stdout.write(
            self.style.SUCCESS(
                f" Adjusted {tx.account.customer_email} by {tx.points} points. "
                f"New balance: {tx.account.current_balance}."
            )
        )
