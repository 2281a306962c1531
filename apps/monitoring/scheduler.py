"""
Monitoring scheduler.

Selects the applications that are due for a health check and queues one
``monitor_application`` task for each of them. A pass holds the
single-flight lock so overlapping ticks (or several beat instances) do not
check the same applications twice.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta

from django.db.models import OuterRef, Subquery
from django.utils import timezone

from apps.incidents.models import Incident
from apps.monitoring.locks import MONITORING_PASS_LOCK, single_flight
from apps.monitoring.models import Application

logger = logging.getLogger(__name__)


@dataclass
class MonitoringSummary:
    """Counts for one monitoring pass."""

    processed: int = 0
    skipped: int = 0
    total: int = 0
    failed: int = 0
    locked: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def last_check_time(application: Application) -> datetime:
    """
    When the application was last known to be checked.

    That is the start of its most recently created incident, or its creation
    time when it never had one. Uses the ``last_incident_started_at``
    annotation when the queryset provides it.
    """
    if hasattr(application, "last_incident_started_at"):
        started_at = application.last_incident_started_at
    else:
        latest = (
            Incident.objects.filter(application=application)
            .order_by("-created_at", "-pk")
            .only("started_at")
            .first()
        )
        started_at = latest.started_at if latest else None
    return started_at or application.created_at


def next_check_time(application: Application) -> datetime:
    return last_check_time(application) + timedelta(minutes=application.monitoring_interval)


def is_due(application: Application, now: datetime | None = None) -> bool:
    """True once ``now`` has reached the next check time (boundary inclusive)."""
    now = now or timezone.now()
    return now >= next_check_time(application)


class MonitoringScheduler:
    """
    Queue health checks for due applications.

    Usage:
        summary = MonitoringScheduler().run()
        summary = MonitoringScheduler().run(group_id=3, force=True)
    """

    def candidates(self, application_id: int | None = None, group_id: int | None = None):
        latest_incident = Incident.objects.filter(application=OuterRef("pk")).order_by(
            "-created_at", "-pk"
        )
        queryset = Application.objects.annotate(
            last_incident_started_at=Subquery(latest_incident.values("started_at")[:1])
        ).order_by("pk")
        if application_id is not None:
            queryset = queryset.filter(pk=application_id)
        if group_id is not None:
            queryset = queryset.filter(application_group_id=group_id)
        return queryset

    def run(
        self,
        application_id: int | None = None,
        group_id: int | None = None,
        force: bool = False,
        now: datetime | None = None,
    ) -> MonitoringSummary:
        """
        Run one monitoring pass.

        Args:
            application_id: Only consider this application.
            group_id: Only consider applications of this group.
            force: Check every selected application regardless of timing.
            now: Reference time for the due check (defaults to now).

        Returns:
            MonitoringSummary; ``locked`` is True when another pass was running.
        """
        with single_flight(MONITORING_PASS_LOCK) as acquired:
            if not acquired:
                logger.info("Monitoring pass skipped: previous pass still running")
                return MonitoringSummary(locked=True)
            return self._run(application_id, group_id, force, now or timezone.now())

    def _run(self, application_id, group_id, force, now) -> MonitoringSummary:
        from apps.monitoring.tasks import monitor_application

        summary = MonitoringSummary()

        for application in self.candidates(application_id, group_id):
            summary.total += 1

            if not force and not is_due(application, now):
                logger.debug(
                    f"Skipping {application.name}: next check at {next_check_time(application)}"
                )
                summary.skipped += 1
                continue

            try:
                monitor_application.delay(application.pk)
            except Exception as e:
                logger.exception(
                    f"Failed to queue check for application {application.pk} "
                    f"({application.name}): {e}"
                )
                summary.failed += 1
                continue

            logger.debug(f"Queued check for {application.name}")
            summary.processed += 1

        logger.info(
            f"Monitoring pass: {summary.processed} queued, {summary.skipped} skipped, "
            f"{summary.failed} failed, {summary.total} total"
        )
        return summary
