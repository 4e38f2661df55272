from rest_framework.permissions import BasePermission

from integrations.models import IntegrationApiKey


class IsIntegrationClient(BasePermission):
    """
    Allows requests authenticated with an active integration API key.
    """

    message = "A valid X-API-KEY header is required."

    def has_permission(self, request, view):
        return isinstance(request.auth, IntegrationApiKey)


class IsStaffUser(BasePermission):
    """
    Allows staff users of the admin console.
    """

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_staff)
