"""Admin configuration for monitored applications and groups."""

from django.contrib import admin
from django.utils.html import format_html
from django_object_actions import DjangoObjectActions
from django_object_actions import action as object_action

from apps.incidents.models import Incident
from apps.monitoring.models import Application, ApplicationGroup
from apps.monitoring.scheduler import next_check_time
from apps.monitoring.services import delete_application_group, subscribe_owner


class IncidentInline(admin.TabularInline):
    """Recent incidents of an application."""

    model = Incident
    extra = 0
    fields = ["title", "severity", "status", "response_code", "started_at", "ended_at"]
    readonly_fields = fields
    can_delete = False
    show_change_link = True
    ordering = ["-created_at"]

    def has_add_permission(self, request, obj=None):
        return False


class ApplicationInline(admin.TabularInline):
    model = Application
    extra = 0
    fields = ["name", "url", "expected_http_code", "monitoring_interval"]
    readonly_fields = fields
    show_change_link = True
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Application)
class ApplicationAdmin(DjangoObjectActions, admin.ModelAdmin):
    """Admin for Application model."""

    list_display = [
        "name",
        "monitor_url_display",
        "expected_http_code",
        "monitoring_interval",
        "application_group",
        "user",
        "health_badge",
        "next_check_display",
    ]
    list_filter = ["application_group", "expected_http_code"]
    search_fields = ["name", "url", "url_to_watch", "user__username"]
    readonly_fields = ["created_at", "updated_at", "next_check_display"]
    list_select_related = ["application_group", "user"]
    inlines = [IncidentInline]
    actions = ["check_selected"]
    change_actions = ["check_now"]

    fieldsets = [
        (
            None,
            {
                "fields": ["name", "user", "application_group"],
            },
        ),
        (
            "Monitoring",
            {
                "fields": ["url", "url_to_watch", "expected_http_code", "monitoring_interval"],
            },
        ),
        (
            "Timestamps",
            {
                "fields": ["created_at", "updated_at", "next_check_display"],
            },
        ),
    ]

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        if not change:
            subscribe_owner(obj.user, application=obj)

    def _queue_check(self, application) -> None:
        from apps.monitoring.tasks import monitor_application

        monitor_application.delay(application.pk)

    @admin.action(description="Check selected applications now")
    def check_selected(self, request, queryset):
        count = 0
        for application in queryset:
            self._queue_check(application)
            count += 1
        self.message_user(request, f"{count} check(s) queued.")

    @object_action(label="Check now", description="Queue a health check for this application")
    def check_now(self, request, obj):
        self._queue_check(obj)
        self.message_user(request, f"Check queued for '{obj.name}'.")

    @admin.display(description="Monitor URL")
    def monitor_url_display(self, obj):
        return obj.monitor_url

    @admin.display(description="Health")
    def health_badge(self, obj):
        down = Incident.objects.open().for_application(obj).exists()
        color, text = ("#dc3545", "DOWN") if down else ("#28a745", "UP")
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            color,
            text,
        )

    @admin.display(description="Next check")
    def next_check_display(self, obj):
        if obj.pk is None:
            return "-"
        return next_check_time(obj)


@admin.register(ApplicationGroup)
class ApplicationGroupAdmin(admin.ModelAdmin):
    """Admin for ApplicationGroup model."""

    list_display = ["name", "user", "application_count", "created_at"]
    search_fields = ["name", "description", "user__username"]
    readonly_fields = ["created_at", "updated_at"]
    inlines = [ApplicationInline]

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        if not change:
            subscribe_owner(obj.user, application_group=obj)

    def delete_model(self, request, obj):
        delete_application_group(obj)

    def delete_queryset(self, request, queryset):
        for group in queryset:
            delete_application_group(group)

    @admin.display(description="Applications")
    def application_count(self, obj):
        return obj.applications.count()
