"""
Models for the integrations application (machine-to-machine API clients).
"""

import secrets
import uuid

from django.db import models


def generate_api_key():
    return secrets.token_hex(32)


class IntegrationApiKey(models.Model):
    """
    API key for a collaborating subsystem (checkout, reviews, signup flow...).
    Allows key rotation and one key per calling system.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    key = models.CharField(max_length=64, unique=True, db_index=True, default=generate_api_key)
    name = models.CharField(max_length=50, help_text="e.g. 'Checkout' or 'Review service'")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name
