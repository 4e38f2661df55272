"""
Signals for the Loyalty application.
Handles cache invalidation when the configuration is updated.
"""

from django.core.cache import cache
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from loyalty.models import LoyaltyConfig
from loyalty.services import CONFIG_CACHE_KEY


@receiver([post_save, post_delete], sender=LoyaltyConfig)
def clear_config_cache(sender, instance, **kwargs):
    """
    Clears the cached configuration whenever an admin saves it.
    This ensures that earning rules and tier thresholds are always up to date.
    """
    cache.delete(CONFIG_CACHE_KEY)
