"""Shared builders for tests that need users, applications and incidents."""

from django.contrib.auth import get_user_model

from apps.incidents.models import Incident, IncidentSeverity, IncidentStatus
from apps.monitoring.models import Application, ApplicationGroup


def make_user(username="owner", **kwargs):
    kwargs.setdefault("email", f"{username}@example.com")
    return get_user_model().objects.create_user(username=username, password="pw", **kwargs)


def make_group(user, name="Production", **kwargs):
    return ApplicationGroup.objects.create(user=user, name=name, **kwargs)


def make_application(user, name="Shop", url="https://shop.example.com", **kwargs):
    return Application.objects.create(user=user, name=name, url=url, **kwargs)


def make_incident(application, status=IncidentStatus.OPEN, **kwargs):
    kwargs.setdefault("title", "Server Error")
    kwargs.setdefault("severity", IncidentSeverity.HIGH)
    return Incident.objects.create(
        application=application,
        user=application.user,
        status=status,
        **kwargs,
    )
