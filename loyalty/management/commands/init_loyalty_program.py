"""
Creates the configuration singleton and the starter reward catalogue.
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from loyalty.defaults import DEFAULT_REWARDS
from loyalty.models import LoyaltyConfig, Reward


class Command(BaseCommand):
    help = "Initializes the loyalty program configuration and default rewards"

    def add_arguments(self, parser):
        parser.add_argument(
            "--skip-rewards", action="store_true", help="Only create the configuration, not the catalogue"
        )

    @transaction.atomic
    def handle(self, *args, **options):
        config_exists = LoyaltyConfig.objects.filter(pk=LoyaltyConfig.SINGLETON_PK).exists()
        LoyaltyConfig.load()
        if config_exists:
            self.stdout.write(" Loyalty configuration already exists, leaving it untouched.")
        else:
            self.stdout.write(self.style.SUCCESS(" Created default loyalty configuration."))

        if options["skip_rewards"]:
            return

        created = 0
        for data in DEFAULT_REWARDS:
            defaults = {key: value for key, value in data.items() if key != "name"}
            _, was_created = Reward.objects.get_or_create(name=data["name"], defaults=defaults)
            if was_created:
                created += 1

        self.stdout.write(
            self.style.SUCCESS(f" Done! Created {created} rewards ({len(DEFAULT_REWARDS) - created} already existed).")
        )
