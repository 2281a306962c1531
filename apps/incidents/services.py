"""
Incident services.

This module contains the business logic that turns health check outcomes into
incident records and the manual incident operations exposed to operators:

- IncidentEngine: opens/resolves incidents from probe outcomes
- IncidentManager: manual resolve/reopen/status updates/reports
- IncidentQueryService: read helpers and statistics

Every lifecycle event (created/resolved/reopened) is queued for notification
once the surrounding transaction commits.
"""

import logging
from dataclasses import asdict, dataclass

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from apps.incidents.exceptions import DuplicateOpenIncidentError
from apps.incidents.models import (
    Incident,
    IncidentEvent,
    IncidentSeverity,
    IncidentStatus,
    parse_status,
)
from apps.monitoring.models import Application

logger = logging.getLogger(__name__)

# Cap for probe bodies copied into incident descriptions.
MAX_DESCRIPTION_DETAIL = 1000

MONITORING_FAILURE_TITLE = "Monitoring System Failure"


def severity_for_status_code(status_code: int) -> IncidentSeverity:
    """Map a probe status code to an incident severity (0 = no response)."""
    if status_code == 0:
        return IncidentSeverity.CRITICAL
    if status_code >= 500:
        return IncidentSeverity.HIGH
    return IncidentSeverity.LOW


def title_for_status_code(status_code: int) -> str:
    if status_code == 0:
        return "Connection Failed"
    if status_code >= 500:
        return "Server Error"
    if status_code >= 400:
        return "Client Error"
    return "Application Issue"


def description_for_outcome(status_code: int, message: str) -> str:
    detail = (message or "").strip()[:MAX_DESCRIPTION_DETAIL]
    if status_code == 0:
        return f"Failed to connect to application: {detail}"
    return f"Application returned HTTP {status_code}. Error: {detail}"


def emit_incident_event(incident: Incident, event: str) -> None:
    """Queue notification of ``event`` for ``incident`` after commit."""
    from apps.notify.tasks import enqueue_incident_event

    enqueue_incident_event(incident.pk, event)


def _lock_application(application: Application) -> Application:
    """Row-lock the application so OPEN-incident checks are serialized."""
    return Application.objects.select_for_update().get(pk=application.pk)


@dataclass
class ProcessingResult:
    """Result of feeding one health outcome to the engine."""

    application_id: int
    healthy: bool
    incidents_created: int = 0
    incidents_resolved: int = 0
    incident_id: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)


class IncidentEngine:
    """
    Turns health check outcomes into incident state.

    - healthy outcome: every OPEN incident of the application is resolved
    - unhealthy outcome: an OPEN incident is created unless one already exists

    Usage:
        engine = IncidentEngine()
        result = engine.process_outcome(application, outcome)
    """

    def process_outcome(self, application: Application, outcome) -> ProcessingResult:
        """
        Apply a HealthOutcome to the application's incidents.

        Args:
            application: The probed application.
            outcome: HealthOutcome from the health checker.

        Returns:
            ProcessingResult with created/resolved counts.
        """
        if outcome.healthy:
            return self._handle_healthy(application)
        return self._handle_unhealthy(application, outcome)

    def _handle_healthy(self, application: Application) -> ProcessingResult:
        result = ProcessingResult(application_id=application.pk, healthy=True)

        with transaction.atomic():
            _lock_application(application)
            open_incidents = list(
                Incident.objects.select_for_update().open().for_application(application)
            )
            for incident in open_incidents:
                incident.resolve()
                result.incidents_resolved += 1
                result.incident_id = incident.pk
                logger.info(
                    f"Resolved incident {incident.pk} for application {application.name}"
                )
                emit_incident_event(incident, IncidentEvent.RESOLVED)

        return result

    def _handle_unhealthy(self, application: Application, outcome) -> ProcessingResult:
        result = ProcessingResult(application_id=application.pk, healthy=False)
        status_code = outcome.status_code

        with transaction.atomic():
            _lock_application(application)
            existing = Incident.objects.open().for_application(application).first()
            if existing:
                result.incident_id = existing.pk
                logger.info(
                    f"Incident {existing.pk} already open for application {application.name}"
                )
                return result

            incident = Incident.objects.create(
                application=application,
                user_id=application.user_id,
                title=title_for_status_code(status_code),
                description=description_for_outcome(status_code, outcome.message),
                severity=severity_for_status_code(status_code),
                status=IncidentStatus.OPEN,
                response_code=status_code if status_code > 0 else None,
                response_time=outcome.response_time_ms,
                error_message=(outcome.message or "")[:MAX_DESCRIPTION_DETAIL],
                started_at=timezone.now(),
            )
            result.incidents_created = 1
            result.incident_id = incident.pk
            logger.warning(
                f"Created incident {incident.pk} ({incident.severity}) "
                f"for application {application.name}"
            )
            emit_incident_event(incident, IncidentEvent.CREATED)

        return result

    def record_monitoring_failure(
        self, application: Application, error: BaseException | str
    ) -> Incident | None:
        """
        Record that the application could not be checked at all.

        Creates a CRITICAL "Monitoring System Failure" incident unless an
        OPEN incident already exists for the application.

        Returns:
            The created incident, or None when one was already open.
        """
        message = str(error) or error.__class__.__name__

        with transaction.atomic():
            _lock_application(application)
            existing = Incident.objects.open().for_application(application).first()
            if existing:
                logger.error(
                    f"Monitoring failed for {application.name} ({message}); "
                    f"incident {existing.pk} is already open"
                )
                return None

            incident = Incident.objects.create(
                application=application,
                user_id=application.user_id,
                title=MONITORING_FAILURE_TITLE,
                description=f"Failed to monitor application: {message}",
                severity=IncidentSeverity.CRITICAL,
                status=IncidentStatus.OPEN,
                error_message=message[:MAX_DESCRIPTION_DETAIL],
                started_at=timezone.now(),
            )
            logger.error(
                f"Monitoring failed for {application.name}: {message} (incident {incident.pk})"
            )
            emit_incident_event(incident, IncidentEvent.CREATED)

        return incident


class IncidentManager:
    """
    Manual incident operations.

    Ownership checks happen in the calling layer; these methods only enforce
    the incident state machine and the one-OPEN-incident rule.
    """

    @staticmethod
    def resolve(incident_id: int) -> Incident:
        """
        Resolve an incident (from OPEN or IN_PROGRESS).

        Raises:
            IncidentTransitionError: if the incident is already resolved or closed.
        """
        with transaction.atomic():
            incident = Incident.objects.select_for_update().get(pk=incident_id)
            incident.resolve()
            emit_incident_event(incident, IncidentEvent.RESOLVED)

        logger.info(f"Incident resolved: {incident.pk} {incident.title}")
        return incident

    @staticmethod
    def reopen(incident_id: int) -> Incident:
        """
        Reopen a resolved incident.

        Raises:
            IncidentTransitionError: if the incident is not RESOLVED.
            DuplicateOpenIncidentError: if the application has another OPEN incident.
        """
        with transaction.atomic():
            incident = Incident.objects.select_for_update().get(pk=incident_id)
            incident.reopen(save=False)

            _lock_application(incident.application)
            other_open = (
                Incident.objects.open()
                .for_application(incident.application_id)
                .exclude(pk=incident.pk)
                .first()
            )
            if other_open:
                raise DuplicateOpenIncidentError(
                    f"Application already has an open incident ({other_open.pk})"
                )

            incident.save(update_fields=["status", "ended_at", "resolved_at", "updated_at"])
            emit_incident_event(incident, IncidentEvent.REOPENED)

        logger.info(f"Incident reopened: {incident.pk} {incident.title}")
        return incident

    @staticmethod
    def update_status(incident_id: int, status: str) -> Incident:
        """
        Apply an explicit status change, validated against the transition graph.

        Raises:
            IncidentTransitionError: naming the allowed next states.
        """
        new_status = parse_status(status)

        with transaction.atomic():
            incident = Incident.objects.select_for_update().get(pk=incident_id)
            old_status = incident.status
            incident.transition_to(new_status)
            if new_status == IncidentStatus.RESOLVED:
                emit_incident_event(incident, IncidentEvent.RESOLVED)

        logger.info(f"Incident {incident.pk} status changed: {old_status} -> {new_status}")
        return incident

    @staticmethod
    def close(incident_id: int) -> Incident:
        """Close an incident. Allowed from any non-terminal status."""
        return IncidentManager.update_status(incident_id, IncidentStatus.CLOSED)

    @staticmethod
    def report(
        application: Application,
        title: str,
        description: str = "",
        severity: str = IncidentSeverity.LOW,
    ) -> Incident:
        """
        Manually report an incident for an application.

        Raises:
            DuplicateOpenIncidentError: if the application already has an OPEN incident.
        """
        severity = IncidentSeverity(severity)

        with transaction.atomic():
            _lock_application(application)
            existing = Incident.objects.open().for_application(application).first()
            if existing:
                raise DuplicateOpenIncidentError(
                    f"Application already has an open incident ({existing.pk})"
                )

            incident = Incident.objects.create(
                application=application,
                user_id=application.user_id,
                title=title,
                description=description,
                severity=severity,
                status=IncidentStatus.OPEN,
                started_at=timezone.now(),
            )
            emit_incident_event(incident, IncidentEvent.CREATED)

        logger.info(f"Incident reported: {incident.pk} {incident.title}")
        return incident


class IncidentQueryService:
    """
    Service for querying incidents.
    """

    @staticmethod
    def open_for_application(application: Application) -> Incident | None:
        return Incident.objects.open().for_application(application).first()

    @staticmethod
    def active_for_application(application: Application):
        return Incident.objects.active().for_application(application)

    @staticmethod
    def latest_for_application(application: Application) -> Incident | None:
        return Incident.objects.for_application(application).order_by("-created_at").first()

    @staticmethod
    def stats(user) -> dict[str, int]:
        """Incident counts across all of ``user``'s applications."""
        return Incident.objects.owned_by(user).aggregate(
            total=Count("id"),
            open=Count("id", filter=Q(status=IncidentStatus.OPEN)),
            in_progress=Count("id", filter=Q(status=IncidentStatus.IN_PROGRESS)),
            resolved=Count("id", filter=Q(status=IncidentStatus.RESOLVED)),
            closed=Count("id", filter=Q(status=IncidentStatus.CLOSED)),
            critical=Count("id", filter=Q(severity=IncidentSeverity.CRITICAL)),
            high=Count("id", filter=Q(severity=IncidentSeverity.HIGH)),
            low=Count("id", filter=Q(severity=IncidentSeverity.LOW)),
        )
