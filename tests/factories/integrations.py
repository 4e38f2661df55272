"""
Factories for the integrations application
"""

import factory

from integrations.models import IntegrationApiKey


class IntegrationApiKeyFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = IntegrationApiKey

    name = "Checkout"
    key = factory.Faker("sha256")
    is_active = True
