"""Admin configuration for the custom user model."""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from apps.accounts.models import User


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    """Stock user admin plus the notification defaults."""

    list_display = ["username", "email", "notification_email", "channels_display", "is_staff"]
    fieldsets = DjangoUserAdmin.fieldsets + (
        (
            "Notification defaults",
            {
                "fields": [
                    "notification_email",
                    "slack_webhook_url",
                    "teams_webhook_url",
                    "discord_webhook_url",
                ],
            },
        ),
    )

    @admin.display(description="Channels")
    def channels_display(self, obj):
        return ", ".join(obj.configured_channels) or "-"
