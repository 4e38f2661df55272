import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from tests.factories.integrations import IntegrationApiKeyFactory
from tests.factories.users import StaffUserFactory


@pytest.fixture
def api_client():
    """
    Fixture to provide an instance of DRF APIClient.
    """
    return APIClient()


@pytest.fixture
def integration_client(api_client):
    """
    APIClient authenticated as a collaborating subsystem (X-API-KEY).
    """
    api_key = IntegrationApiKeyFactory()
    api_client.credentials(HTTP_X_API_KEY=api_key.key)
    return api_client


@pytest.fixture
def staff_client(api_client):
    """
    APIClient authenticated as an admin console user.
    """
    api_client.force_authenticate(user=StaffUserFactory())
    return api_client


@pytest.fixture(autouse=True)
def enable_db_access_for_all_tests(db):
    """
    Automatically enables database access for all tests.
    """
    pass


@pytest.fixture(autouse=True)
def clear_cache():
    """
    The configuration is cached; start every test from an empty cache.
    """
    cache.clear()
    yield
    cache.clear()
