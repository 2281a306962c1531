"""Admin app configuration that installs the uptime console as admin.site."""

from django.contrib.admin.apps import AdminConfig


class MonitoringAdminConfig(AdminConfig):
    default_site = "config.admin.MonitoringAdminSite"
    verbose_name = "Uptime console"
