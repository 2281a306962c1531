"""Celery tasks for incident notifications."""

from __future__ import annotations

import logging
from typing import Any

from celery import shared_task
from django.db import DatabaseError, transaction

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(DatabaseError,),
    max_retries=2,
    default_retry_delay=30,
    retry_backoff=30,
    soft_time_limit=60,
)
def notify_subscribers(self, incident_id: int, event: str) -> dict[str, Any]:
    """
    Deliver one incident event to every subscriber.

    Args:
        incident_id: Incident the event is about.
        event: "created", "resolved" or "reopened".

    Returns:
        DispatchResult as dict, or a skip marker when the incident is gone.
    """
    from apps.incidents.models import Incident
    from apps.notify.dispatcher import NotificationDispatcher

    incident = (
        Incident.objects.select_related("application", "application__user")
        .filter(pk=incident_id)
        .first()
    )
    if incident is None:
        logger.warning(f"Incident {incident_id} no longer exists; {event} notification dropped")
        return {"incident_id": incident_id, "event": event, "skipped": "incident not found"}

    result = NotificationDispatcher().dispatch(incident, event)
    return result.to_dict()


def enqueue_incident_event(incident_id: int, event: str) -> None:
    """
    Queue ``notify_subscribers`` once the current transaction commits.

    Outside a transaction the task is queued immediately. Events queued in
    one transaction are sent to the broker in the order they were emitted.
    """
    event = str(event)

    def _enqueue():
        try:
            notify_subscribers.delay(incident_id, event)
        except Exception as e:
            logger.exception(
                f"Failed to enqueue {event} notification for incident {incident_id}: {e}"
            )

    transaction.on_commit(_enqueue)
