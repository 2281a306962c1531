"""Celery tasks for application monitoring.

- run_monitoring_pass: the beat entry point; queues checks for due applications
- monitor_application: one health check plus incident bookkeeping

A check that raises (soft time limit, malformed URL, unexpected error) is
retried; once the attempts are used up the failure is recorded as a CRITICAL
"Monitoring System Failure" incident.
"""

from __future__ import annotations

import logging
from typing import Any

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def run_monitoring_pass(
    self,
    application_id: int | None = None,
    group_id: int | None = None,
    force: bool = False,
) -> dict[str, Any]:
    """
    Queue health checks for every due application.

    Returns:
        MonitoringSummary as dict.
    """
    from apps.monitoring.scheduler import MonitoringScheduler

    summary = MonitoringScheduler().run(
        application_id=application_id,
        group_id=group_id,
        force=force,
    )
    return summary.to_dict()


@shared_task(bind=True, max_retries=2, default_retry_delay=60, soft_time_limit=30)
def monitor_application(self, application_id: int) -> dict[str, Any]:
    """
    Check one application and update its incidents.

    Args:
        application_id: Application to check.

    Returns:
        ProcessingResult as dict, extended with the probe status code.
    """
    from apps.incidents.services import IncidentEngine
    from apps.monitoring.checker import HealthChecker
    from apps.monitoring.models import Application

    application = Application.objects.filter(pk=application_id).first()
    if application is None:
        logger.warning(f"Application {application_id} no longer exists; check skipped")
        return {"application_id": application_id, "skipped": "application not found"}

    engine = IncidentEngine()

    try:
        outcome = HealthChecker().check(application)
    except Exception as e:
        attempt = self.request.retries + 1
        if self.request.retries < self.max_retries:
            logger.warning(
                f"Check of {application.name} failed (attempt {attempt}), retrying: {e}"
            )
            raise self.retry(exc=e)

        logger.error(f"Check of {application.name} failed after {attempt} attempts: {e}")
        incident = engine.record_monitoring_failure(application, e)
        return {
            "application_id": application.pk,
            "healthy": False,
            "monitoring_failure": True,
            "incident_id": incident.pk if incident else None,
        }

    result = engine.process_outcome(application, outcome)
    return {**result.to_dict(), "status_code": outcome.status_code}
