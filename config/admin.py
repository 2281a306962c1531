"""Custom admin site for the uptime monitoring console."""

from datetime import timedelta

from django.contrib.admin import AdminSite
from django.db.models import Count, Q
from django.utils import timezone


class MonitoringAdminSite(AdminSite):
    site_header = "Uptime Incidents"
    site_title = "Uptime Incidents"
    index_title = "Dashboard"
    index_template = "admin/dashboard.html"

    def index(self, request, extra_context=None):
        extra_context = extra_context or {}
        extra_context.update(self._get_dashboard_context())
        return super().index(request, extra_context=extra_context)

    def _get_dashboard_context(self):
        from apps.incidents.models import (
            ACTIVE_STATUSES,
            Incident,
            IncidentSeverity,
            IncidentStatus,
        )
        from apps.monitoring.models import Application

        now = timezone.now()
        last_7d = now - timedelta(days=7)

        # --- Active Incidents ---
        active_incidents = Incident.objects.filter(status__in=ACTIVE_STATUSES).aggregate(
            total=Count("id"),
            critical=Count("id", filter=Q(severity=IncidentSeverity.CRITICAL)),
            high=Count("id", filter=Q(severity=IncidentSeverity.HIGH)),
            low=Count("id", filter=Q(severity=IncidentSeverity.LOW)),
        )

        # --- Applications ---
        applications = Application.objects.aggregate(
            total=Count("id", distinct=True),
            down=Count(
                "id",
                filter=Q(incidents__status=IncidentStatus.OPEN),
                distinct=True,
            ),
        )

        # --- Recent Incidents (last 10) ---
        recent_incidents = list(
            Incident.objects.select_related("application")
            .order_by("-created_at")
            .only(
                "id",
                "application",
                "title",
                "status",
                "severity",
                "started_at",
                "created_at",
                "application__name",
            )[:10]
        )

        # --- 7-Day Aggregations ---
        top_failing_applications = list(
            Incident.objects.filter(created_at__gte=last_7d)
            .values("application__name")
            .annotate(count=Count("id"))
            .order_by("-count")[:5]
        )

        return {
            "active_incidents": active_incidents,
            "applications": applications,
            "recent_incidents": recent_incidents,
            "top_failing_applications": top_failing_applications,
        }
