"""
Incident model and the status state machine.

An incident records one unhealthy period of an application. Its status moves
along a fixed graph:

    OPEN        -> IN_PROGRESS, CLOSED
    IN_PROGRESS -> RESOLVED, CLOSED
    RESOLVED    -> CLOSED
    CLOSED      -> (terminal)

``resolve`` and ``reopen`` are dedicated operations with their own rules
(see Incident.resolve / Incident.reopen); everything else goes through
``transition_to``.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone

from apps.incidents.exceptions import IncidentTransitionError


class IncidentStatus(models.TextChoices):
    """Lifecycle status of an incident."""

    OPEN = "OPEN", "Open"
    IN_PROGRESS = "IN_PROGRESS", "In progress"
    RESOLVED = "RESOLVED", "Resolved"
    CLOSED = "CLOSED", "Closed"


class IncidentSeverity(models.TextChoices):
    """Severity of an incident."""

    LOW = "LOW", "Low"
    HIGH = "HIGH", "High"
    CRITICAL = "CRITICAL", "Critical"


class IncidentEvent(models.TextChoices):
    """Lifecycle events that trigger notifications."""

    CREATED = "created", "Created"
    RESOLVED = "resolved", "Resolved"
    REOPENED = "reopened", "Reopened"


ALLOWED_TRANSITIONS: dict[str, tuple[str, ...]] = {
    IncidentStatus.OPEN: (IncidentStatus.IN_PROGRESS, IncidentStatus.CLOSED),
    IncidentStatus.IN_PROGRESS: (IncidentStatus.RESOLVED, IncidentStatus.CLOSED),
    IncidentStatus.RESOLVED: (IncidentStatus.CLOSED,),
    IncidentStatus.CLOSED: (),
}

ACTIVE_STATUSES = (IncidentStatus.OPEN, IncidentStatus.IN_PROGRESS)
CLOSED_STATUSES = (IncidentStatus.RESOLVED, IncidentStatus.CLOSED)


def allowed_transitions(status: str) -> tuple[str, ...]:
    """Statuses reachable from ``status`` in one step."""
    return ALLOWED_TRANSITIONS.get(status, ())


def can_transition(current: str, new: str) -> bool:
    return new in allowed_transitions(current)


def parse_status(value: str) -> IncidentStatus:
    """Convert a raw value to IncidentStatus or raise IncidentTransitionError."""
    try:
        return IncidentStatus(value)
    except ValueError:
        valid = ", ".join(IncidentStatus.values)
        raise IncidentTransitionError(
            f"'{value}' is not a valid incident status. Valid statuses: {valid}"
        ) from None


class IncidentQuerySet(models.QuerySet):
    def open(self):
        return self.filter(status=IncidentStatus.OPEN)

    def active(self):
        return self.filter(status__in=ACTIVE_STATUSES)

    def for_application(self, application):
        return self.filter(application=application)

    def owned_by(self, user):
        return self.filter(application__user=user)


class Incident(models.Model):
    """
    An unhealthy period (or manual report) for one application.

    At most one incident per application is OPEN at any time; the incident
    services enforce this under a row lock on the application.
    """

    title = models.CharField(
        max_length=255,
    )
    description = models.TextField(
        blank=True,
        default="",
    )

    application = models.ForeignKey(
        "monitoring.Application",
        on_delete=models.CASCADE,
        related_name="incidents",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="incidents",
        help_text="Owner of the application at the time the incident was recorded.",
    )

    status = models.CharField(
        max_length=20,
        choices=IncidentStatus.choices,
        default=IncidentStatus.OPEN,
        db_index=True,
    )
    severity = models.CharField(
        max_length=20,
        choices=IncidentSeverity.choices,
        default=IncidentSeverity.LOW,
        db_index=True,
    )

    # Probe details
    response_code = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text="HTTP status returned by the probe (null when no response).",
    )
    response_time = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Probe duration in milliseconds.",
    )
    error_message = models.TextField(
        blank=True,
        default="",
    )

    # Timestamps
    started_at = models.DateTimeField(
        default=timezone.now,
    )
    ended_at = models.DateTimeField(
        null=True,
        blank=True,
    )
    resolved_at = models.DateTimeField(
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
    )
    updated_at = models.DateTimeField(
        auto_now=True,
    )

    objects = IncidentQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["application", "status"], name="incident_app_status_idx"),
            models.Index(fields=["application", "-created_at"], name="incident_app_created_idx"),
            models.Index(fields=["status", "severity"], name="incident_status_severity_idx"),
        ]

    def __str__(self):
        return f"[{self.status}] {self.title}"

    @property
    def is_open(self) -> bool:
        return self.status == IncidentStatus.OPEN

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_STATUSES

    @property
    def duration(self) -> int | None:
        """Seconds between start and end, None while the incident is ongoing."""
        if not self.ended_at:
            return None
        return int((self.ended_at - self.started_at).total_seconds())

    @property
    def allowed_transitions(self) -> tuple[str, ...]:
        return allowed_transitions(self.status)

    def _apply_status(self, new_status: str) -> list[str]:
        """Set status and keep ended_at in step with it. Returns changed fields."""
        self.status = new_status
        changed = ["status", "updated_at"]
        if new_status in CLOSED_STATUSES:
            if not self.ended_at:
                self.ended_at = timezone.now()
                changed.append("ended_at")
        elif self.ended_at:
            self.ended_at = None
            changed.append("ended_at")
        return changed

    def transition_to(self, new_status: str, save: bool = True):
        """
        Move to ``new_status`` following the transition graph.

        Raises:
            IncidentTransitionError: if the transition is not allowed.
        """
        new_status = parse_status(new_status)
        if not can_transition(self.status, new_status):
            allowed = ", ".join(str(s) for s in self.allowed_transitions) or "none"
            raise IncidentTransitionError(
                f"Cannot transition from {self.status} to {new_status}. "
                f"Allowed transitions: {allowed}"
            )

        changed = self._apply_status(new_status)
        if new_status == IncidentStatus.RESOLVED:
            self.resolved_at = self.ended_at
            changed.append("resolved_at")
        if save:
            self.save(update_fields=changed)

    def resolve(self, save: bool = True):
        """
        Mark the incident as resolved.

        Allowed from OPEN and IN_PROGRESS; from OPEN this skips IN_PROGRESS.
        Sets ended_at and resolved_at.
        """
        if self.status == IncidentStatus.RESOLVED:
            raise IncidentTransitionError("Incident is already resolved")
        if self.status == IncidentStatus.CLOSED:
            raise IncidentTransitionError("Closed incidents cannot be resolved")

        now = timezone.now()
        self.status = IncidentStatus.RESOLVED
        self.ended_at = now
        self.resolved_at = now
        if save:
            self.save(update_fields=["status", "ended_at", "resolved_at", "updated_at"])

    def reopen(self, save: bool = True):
        """Move a RESOLVED incident back to OPEN and clear its end timestamps."""
        if self.status != IncidentStatus.RESOLVED:
            raise IncidentTransitionError("Only resolved incidents can be reopened")

        self.status = IncidentStatus.OPEN
        self.ended_at = None
        self.resolved_at = None
        if save:
            self.save(update_fields=["status", "ended_at", "resolved_at", "updated_at"])
