"""
Management command to check one application right now.

Runs the health check and the incident bookkeeping in-process, bypassing the
task queue. Useful when diagnosing a single application.

Usage:
    python manage.py check_application 7
    python manage.py check_application 7 --json
"""

import json

from django.core.management.base import BaseCommand, CommandError

from apps.incidents.services import IncidentEngine
from apps.monitoring.checker import HealthChecker
from apps.monitoring.models import Application


class Command(BaseCommand):
    help = "Check one application synchronously and update its incidents"

    def add_arguments(self, parser):
        parser.add_argument("application_id", type=int, help="ID of the application to check.")
        parser.add_argument(
            "--json",
            action="store_true",
            dest="json_output",
            help="Output the outcome as JSON.",
        )

    def handle(self, *args, **options):
        application_id = options["application_id"]
        application = Application.objects.filter(pk=application_id).first()
        if application is None:
            raise CommandError(f"Application {application_id} does not exist")

        try:
            outcome = HealthChecker().check(application)
        except ValueError as e:
            raise CommandError(f"Cannot check {application.name}: {e}") from e

        result = IncidentEngine().process_outcome(application, outcome)

        if options["json_output"]:
            self.stdout.write(
                json.dumps({"outcome": outcome.to_dict(), "result": result.to_dict()}, indent=2)
            )
            return

        if outcome.healthy:
            self.stdout.write(
                self.style.SUCCESS(
                    f"[HEALTHY] {application.name}: HTTP {outcome.status_code} "
                    f"in {outcome.response_time_ms}ms"
                )
            )
        else:
            status = f"HTTP {outcome.status_code}" if outcome.status_code else "no response"
            self.stdout.write(
                self.style.ERROR(f"[UNHEALTHY] {application.name}: {status} {outcome.message}".rstrip())
            )

        if result.incidents_created:
            self.stdout.write(f"Opened incident {result.incident_id}")
        elif result.incidents_resolved:
            self.stdout.write(f"Resolved {result.incidents_resolved} incident(s)")
        elif result.incident_id:
            self.stdout.write(f"Incident {result.incident_id} is still open")
