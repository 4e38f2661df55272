"""
Tests for machine-to-machine authentication with integration API keys.
"""

from rest_framework import status

from integrations.models import IntegrationApiKey
from tests.factories.integrations import IntegrationApiKeyFactory


class TestIntegrationApiKeys:
    url = "/api/loyalty/referrals/validate/"

    def test_generated_keys_are_unique(self):
        first = IntegrationApiKey.objects.create(name="Checkout")
        second = IntegrationApiKey.objects.create(name="Reviews")

        assert len(first.key) == 64
        assert first.key != second.key

    def test_active_key_is_accepted(self, api_client):
        api_key = IntegrationApiKeyFactory()
        api_client.credentials(HTTP_X_API_KEY=api_key.key)

        response = api_client.get(self.url, {"code": "REFX"})

        assert response.status_code == status.HTTP_200_OK

    def test_revoked_key_is_rejected(self, api_client):
        api_key = IntegrationApiKeyFactory(is_active=False)
        api_client.credentials(HTTP_X_API_KEY=api_key.key)

        response = api_client.get(self.url, {"code": "REFX"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response["WWW-Authenticate"] == "X-API-KEY"

    def test_staff_session_is_not_an_integration_client(self, staff_client):
        response = staff_client.get(self.url, {"code": "REFX"})

        assert response.status_code == status.HTTP_403_FORBIDDEN
