"""
Notification dispatcher.

Delivers one incident event to every resolved target on each of its channels.
A failing channel is logged and counted; it never stops delivery to the
remaining channels or targets.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from django.conf import settings

from apps.notify.drivers import DRIVER_REGISTRY, NotificationMessage, is_notify_enabled
from apps.notify.models import WEBHOOK_CHANNELS, NotificationChannel
from apps.notify.subscriptions import DeliveryTarget, SubscriptionResolver

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Counts for one dispatch run."""

    incident_id: int
    event: str
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class NotificationDispatcher:
    """
    Send an incident event to its subscribers.

    Usage:
        dispatcher = NotificationDispatcher()
        result = dispatcher.dispatch(incident, "created")
    """

    def __init__(self, resolver: SubscriptionResolver | None = None):
        self.resolver = resolver or SubscriptionResolver()

    def dispatch(
        self,
        incident,
        event: str,
        targets: list[DeliveryTarget] | None = None,
    ) -> DispatchResult:
        """
        Deliver ``event`` for ``incident``.

        Args:
            incident: The incident the event is about.
            event: "created", "resolved" or "reopened".
            targets: Delivery targets; resolved from subscriptions when omitted.

        Returns:
            DispatchResult with sent/skipped/failed counts.
        """
        event = str(event)
        if targets is None:
            targets = self.resolver.resolve(incident)

        message = NotificationMessage.from_incident(incident, event)
        result = DispatchResult(incident_id=incident.pk, event=event)

        for target in targets:
            for channel in target.channels:
                self._deliver(message, target, channel, result)

        logger.info(
            f"Dispatched {event} for incident {incident.pk}: "
            f"{result.sent} sent, {result.skipped} skipped, {result.failed} failed"
        )
        return result

    def _deliver(
        self,
        message: NotificationMessage,
        target: DeliveryTarget,
        channel: str,
        result: DispatchResult,
    ) -> None:
        driver_class = DRIVER_REGISTRY.get(channel)
        if driver_class is None:
            logger.warning(f"Unknown channel '{channel}' for {target.label}; skipping")
            result.skipped += 1
            return

        if not is_notify_enabled(channel):
            logger.info(f"Channel '{channel}' is disabled; skipping {target.label}")
            result.skipped += 1
            return

        address = target.address_for(channel)
        if not address:
            logger.warning(
                f"No {channel} address for {target.label} "
                f"(incident {message.incident_id}); skipping"
            )
            result.skipped += 1
            return

        try:
            outcome = driver_class().send(message, self.config_for(channel, address))
        except Exception as e:
            logger.exception(f"{channel} delivery to {target.label} raised: {e}")
            outcome = {"success": False, "error": str(e)}

        if outcome.get("success"):
            result.sent += 1
            return

        error = outcome.get("error") or "unknown error"
        logger.error(f"{channel} delivery to {target.label} failed: {error}")
        result.failed += 1
        result.errors.append(f"{target.label}/{channel}: {error}")

    @staticmethod
    def config_for(channel: str, address: str) -> dict[str, Any]:
        """Driver configuration for delivering to ``address`` on ``channel``."""
        if channel == NotificationChannel.EMAIL:
            email_config = dict(getattr(settings, "NOTIFY_EMAIL", {}))
            email_config["to_addresses"] = [address]
            return email_config
        if channel in WEBHOOK_CHANNELS:
            return {
                "webhook_url": address,
                "timeout": getattr(settings, "NOTIFY_WEBHOOK_TIMEOUT", 10),
            }
        return {}
