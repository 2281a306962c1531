"""Admin configuration for incidents."""

from django import forms
from django.contrib import admin
from django.utils.html import format_html
from django_object_actions import DjangoObjectActions
from django_object_actions import action as object_action

from apps.incidents.exceptions import IncidentError
from apps.incidents.models import Incident
from apps.incidents.services import IncidentManager

SEVERITY_COLORS = {
    "CRITICAL": "#dc3545",
    "HIGH": "#fd7e14",
    "LOW": "#17a2b8",
}

STATUS_COLORS = {
    "OPEN": "#dc3545",
    "IN_PROGRESS": "#ffc107",
    "RESOLVED": "#28a745",
    "CLOSED": "#6c757d",
}


def _badge(color: str, text: str):
    return format_html(
        '<span style="background-color: {}; color: white; padding: 3px 8px; '
        'border-radius: 3px; font-size: 11px;">{}</span>',
        color,
        text,
    )


class IncidentAddForm(forms.ModelForm):
    """Manual report form; the incident always starts OPEN for the application owner."""

    class Meta:
        model = Incident
        fields = ["title", "application", "severity", "description"]

    def clean(self):
        cleaned_data = super().clean()
        application = cleaned_data.get("application")
        if application and Incident.objects.open().for_application(application).exists():
            raise forms.ValidationError(
                {"application": "This application already has an open incident."}
            )
        return cleaned_data


@admin.register(Incident)
class IncidentAdmin(DjangoObjectActions, admin.ModelAdmin):
    """Admin for Incident model."""

    list_display = [
        "title",
        "application",
        "severity_badge",
        "status_badge",
        "response_code",
        "started_at",
        "ended_at",
        "duration_display",
    ]
    list_filter = ["status", "severity", "application"]
    search_fields = ["title", "description", "error_message", "application__name"]
    readonly_fields = [
        "started_at",
        "ended_at",
        "resolved_at",
        "created_at",
        "updated_at",
        "duration_display",
    ]
    list_select_related = ["application"]
    date_hierarchy = "created_at"
    change_actions = ["resolve_incident", "reopen_incident", "close_incident"]
    add_form = IncidentAddForm
    add_fieldsets = [
        (
            None,
            {
                "fields": ["title", "application", "severity", "description"],
            },
        ),
    ]

    fieldsets = [
        (
            None,
            {
                "fields": ["title", "application", "user", "severity", "status"],
            },
        ),
        (
            "Details",
            {
                "fields": ["description", "error_message"],
            },
        ),
        (
            "Probe",
            {
                "fields": ["response_code", "response_time"],
            },
        ),
        (
            "Timestamps",
            {
                "fields": [
                    "started_at",
                    "ended_at",
                    "resolved_at",
                    "duration_display",
                    "created_at",
                    "updated_at",
                ],
            },
        ),
    ]

    def get_readonly_fields(self, request, obj=None):
        # Once recorded, the application is fixed and status changes go through the object actions.
        if obj is not None:
            return [*self.readonly_fields, "application", "user", "status"]
        return self.readonly_fields

    def get_fieldsets(self, request, obj=None):
        if obj is None:
            return self.add_fieldsets
        return super().get_fieldsets(request, obj)

    def get_form(self, request, obj=None, **kwargs):
        if obj is None:
            kwargs["form"] = self.add_form
        return super().get_form(request, obj, **kwargs)

    def save_model(self, request, obj, form, change):
        if change:
            super().save_model(request, obj, form, change)
            return
        incident = IncidentManager.report(
            obj.application, obj.title, obj.description, obj.severity
        )
        obj.pk = incident.pk
        obj.refresh_from_db()
        obj._state.adding = False

    def _run(self, request, obj, operation, verb: str, done: str):
        try:
            operation(obj.pk)
        except IncidentError as e:
            self.message_user(request, f"Cannot {verb} incident: {e}", level="warning")
            return
        self.message_user(request, f"Incident '{obj.title}' {done}.")

    @object_action(label="Resolve", description="Mark this incident as resolved")
    def resolve_incident(self, request, obj):
        self._run(request, obj, IncidentManager.resolve, "resolve", "resolved")

    @object_action(label="Reopen", description="Reopen this resolved incident")
    def reopen_incident(self, request, obj):
        self._run(request, obj, IncidentManager.reopen, "reopen", "reopened")

    @object_action(label="Close", description="Mark this incident as closed")
    def close_incident(self, request, obj):
        self._run(request, obj, IncidentManager.close, "close", "closed")

    @admin.display(description="Severity")
    def severity_badge(self, obj):
        return _badge(SEVERITY_COLORS.get(obj.severity, "#6c757d"), obj.severity)

    @admin.display(description="Status")
    def status_badge(self, obj):
        return _badge(STATUS_COLORS.get(obj.status, "#6c757d"), obj.status)

    @admin.display(description="Duration")
    def duration_display(self, obj):
        seconds = obj.duration
        if seconds is None:
            return "-"
        minutes, seconds = divmod(seconds, 60)
        hours, minutes = divmod(minutes, 60)
        return f"{hours}h {minutes}m {seconds}s" if hours else f"{minutes}m {seconds}s"
