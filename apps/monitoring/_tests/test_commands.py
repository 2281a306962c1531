"""Tests for the monitoring management commands."""

import json
from io import StringIO
from unittest.mock import patch

import pytest
from django.core.cache import cache
from django.core.management import CommandError, call_command

from apps.incidents.models import Incident
from apps.monitoring._tests.helpers import make_application, make_user
from apps.monitoring.checker import HealthOutcome


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()


@pytest.mark.django_db
@patch("apps.monitoring.tasks.monitor_application.delay")
def test_monitor_applications_force(mock_delay):
    make_application(make_user())
    out = StringIO()

    call_command("monitor_applications", "--force", stdout=out)

    mock_delay.assert_called_once()
    assert "Processed: 1 | Skipped: 0 | Total: 1" in out.getvalue()


@pytest.mark.django_db
@patch("apps.monitoring.tasks.monitor_application.delay")
def test_monitor_applications_json(mock_delay):
    make_application(make_user())
    out = StringIO()

    call_command("monitor_applications", "--json", stdout=out)

    summary = json.loads(out.getvalue())
    assert summary["total"] == 1
    assert summary["skipped"] == 1
    mock_delay.assert_not_called()


@pytest.mark.django_db
def test_monitor_applications_unknown_application():
    with pytest.raises(CommandError, match="does not exist"):
        call_command("monitor_applications", "--application", "999")


@pytest.mark.django_db
@patch("apps.incidents.services.emit_incident_event")
@patch("apps.monitoring.checker.HealthChecker.check")
def test_check_application_opens_incident(mock_check, mock_emit):
    application = make_application(make_user())
    mock_check.return_value = HealthOutcome(
        healthy=False, status_code=500, message="boom", response_time_ms=10
    )
    out = StringIO()

    call_command("check_application", str(application.pk), stdout=out)

    assert "[UNHEALTHY] Shop: HTTP 500 boom" in out.getvalue()
    assert Incident.objects.filter(application=application).count() == 1


@pytest.mark.django_db
@patch("apps.monitoring.checker.HealthChecker.check")
def test_check_application_json(mock_check):
    application = make_application(make_user())
    mock_check.return_value = HealthOutcome(healthy=True, status_code=200, response_time_ms=10)
    out = StringIO()

    call_command("check_application", str(application.pk), "--json", stdout=out)

    data = json.loads(out.getvalue())
    assert data["outcome"]["healthy"] is True
    assert data["result"]["incidents_resolved"] == 0


@pytest.mark.django_db
def test_check_application_unknown():
    with pytest.raises(CommandError):
        call_command("check_application", "999")
