"""Admin configuration for notify models."""

from django.contrib import admin
from django.db import models as db_models
from django_json_widget.widgets import JSONEditorWidget

from apps.notify.models import Subscription


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    """Admin for Subscription model."""

    list_display = [
        "user",
        "target_display",
        "channels_display",
        "is_active",
        "created_at",
    ]
    formfield_overrides = {db_models.JSONField: {"widget": JSONEditorWidget}}
    list_filter = ["is_active"]
    search_fields = [
        "user__username",
        "application__name",
        "application_group__name",
        "email",
    ]
    list_select_related = ["user", "application", "application_group"]
    readonly_fields = ["created_at", "updated_at"]
    actions = ["activate_selected", "deactivate_selected"]

    fieldsets = [
        (
            None,
            {
                "fields": ["user", "application", "application_group", "is_active"],
            },
        ),
        (
            "Delivery",
            {
                "fields": ["notification_channels", "email", "webhook_url"],
            },
        ),
        (
            "Timestamps",
            {
                "fields": ["created_at", "updated_at"],
                "classes": ["collapse"],
            },
        ),
    ]

    @admin.action(description="Activate selected subscriptions")
    def activate_selected(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, f"{updated} subscription(s) activated.")

    @admin.action(description="Deactivate selected subscriptions")
    def deactivate_selected(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} subscription(s) deactivated.")

    @admin.display(description="Target")
    def target_display(self, obj):
        if obj.application_id:
            return f"Application: {obj.application.name}"
        return f"Group: {obj.application_group.name}"

    @admin.display(description="Channels")
    def channels_display(self, obj):
        return ", ".join(obj.channels)
