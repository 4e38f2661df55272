from django.apps import AppConfig


class LoyaltyAppConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "loyalty"
    verbose_name = "Loyalty ledger"

    def ready(self):
        from loyalty import signals  # noqa: F401
