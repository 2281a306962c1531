"""
Management command to run a monitoring pass.

Usage:
    python manage.py monitor_applications                   # Check due applications
    python manage.py monitor_applications --force           # Check everything now
    python manage.py monitor_applications --application 7   # Only application 7
    python manage.py monitor_applications --group 2         # Only applications of group 2
    python manage.py monitor_applications --json            # Output the summary as JSON
"""

import json

from django.core.management.base import BaseCommand, CommandError

from apps.monitoring.models import Application, ApplicationGroup
from apps.monitoring.scheduler import MonitoringScheduler


class Command(BaseCommand):
    help = "Queue health checks for due applications and print a summary"

    def add_arguments(self, parser):
        parser.add_argument(
            "--application",
            type=int,
            dest="application_id",
            help="Only consider the application with this ID.",
        )
        parser.add_argument(
            "--group",
            type=int,
            dest="group_id",
            help="Only consider applications of the group with this ID.",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Check selected applications even if they are not due.",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            dest="json_output",
            help="Output the summary as JSON.",
        )

    def handle(self, *args, **options):
        application_id = options["application_id"]
        group_id = options["group_id"]

        if application_id is not None and not Application.objects.filter(pk=application_id).exists():
            raise CommandError(f"Application {application_id} does not exist")
        if group_id is not None and not ApplicationGroup.objects.filter(pk=group_id).exists():
            raise CommandError(f"Application group {group_id} does not exist")

        summary = MonitoringScheduler().run(
            application_id=application_id,
            group_id=group_id,
            force=options["force"],
        )

        if options["json_output"]:
            self.stdout.write(json.dumps(summary.to_dict(), indent=2))
            return

        if summary.locked:
            self.stdout.write(self.style.WARNING("Another monitoring pass is running; nothing done."))
            return

        line = (
            f"Processed: {summary.processed} | Skipped: {summary.skipped} | "
            f"Total: {summary.total}"
        )
        if summary.failed:
            self.stdout.write(self.style.ERROR(f"{line} | Failed: {summary.failed}"))
        else:
            self.stdout.write(self.style.SUCCESS(line))
