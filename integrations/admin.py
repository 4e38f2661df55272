from django.contrib import admin

from integrations.models import IntegrationApiKey


@admin.register(IntegrationApiKey)
class IntegrationApiKeyAdmin(admin.ModelAdmin):
    list_display = ("name", "is_active", "created_at")
    list_filter = ("is_active",)
    readonly_fields = ("key", "created_at")
