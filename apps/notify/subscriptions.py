"""
Subscription resolution: who is notified about an incident, on which channels,
and at which address.

Sources, in order:
1. active subscriptions on the incident's application
2. active subscriptions on the application's group (if any)
3. the application owner's own channel settings (implicit subscription)

Each (user, channel) pair is delivered at most once; the first source that
claims it wins. Addresses come from the subscription when it carries one and
fall back to the subscriber's user settings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from apps.notify.models import (
    ApplicationTarget,
    GroupTarget,
    NotificationChannel,
    Subscription,
    SubscriptionTarget,
)

logger = logging.getLogger(__name__)


@dataclass
class DeliveryTarget:
    """One recipient with the channels and addresses to deliver to."""

    user_id: int
    channels: list[str]
    addresses: dict[str, str] = field(default_factory=dict)
    subscription_id: int | None = None  # None for the owner's implicit target

    @property
    def label(self) -> str:
        if self.subscription_id is None:
            return f"owner:{self.user_id}"
        return f"subscription:{self.subscription_id}"

    def address_for(self, channel: str) -> str:
        return self.addresses.get(channel, "")

    @classmethod
    def from_subscription(cls, subscription: Subscription, channels: list[str]):
        user_addresses = subscription.user.channel_addresses
        addresses = {}
        for channel in channels:
            if channel == NotificationChannel.EMAIL:
                own = subscription.email
            else:
                own = subscription.webhook_url
            addresses[channel] = own or user_addresses.get(channel, "")
        return cls(
            user_id=subscription.user_id,
            channels=channels,
            addresses=addresses,
            subscription_id=subscription.pk,
        )

    @classmethod
    def for_owner(cls, owner, channels: list[str]):
        user_addresses = owner.channel_addresses
        return cls(
            user_id=owner.pk,
            channels=channels,
            addresses={channel: user_addresses[channel] for channel in channels},
        )


class SubscriptionResolver:
    """
    Resolve the delivery targets for an incident.

    Usage:
        targets = SubscriptionResolver().resolve(incident)
    """

    def targets_for_incident(self, incident) -> list[SubscriptionTarget]:
        application = incident.application
        targets: list[SubscriptionTarget] = [ApplicationTarget(application.pk)]
        if application.application_group_id:
            targets.append(GroupTarget(application.application_group_id))
        return targets

    def subscriptions_for(self, target: SubscriptionTarget) -> list[Subscription]:
        return list(
            Subscription.objects.active()
            .for_target(target)
            .select_related("user")
            .order_by("created_at", "pk")
        )

    def resolve(self, incident) -> list[DeliveryTarget]:
        seen: set[tuple[int, str]] = set()
        seen_subscriptions: set[int] = set()
        delivery_targets: list[DeliveryTarget] = []

        for target in self.targets_for_incident(incident):
            for subscription in self.subscriptions_for(target):
                if subscription.pk in seen_subscriptions:
                    continue
                seen_subscriptions.add(subscription.pk)

                channels = self._claim(subscription.user_id, subscription.channels, seen)
                if channels:
                    delivery_targets.append(
                        DeliveryTarget.from_subscription(subscription, channels)
                    )

        owner = incident.application.user
        owner_channels = self._claim(owner.pk, owner.configured_channels, seen)
        if owner_channels:
            delivery_targets.append(DeliveryTarget.for_owner(owner, owner_channels))

        logger.debug(
            f"Resolved {len(delivery_targets)} delivery target(s) for incident {incident.pk}"
        )
        return delivery_targets

    @staticmethod
    def _claim(user_id: int, channels: list[str], seen: set[tuple[int, str]]) -> list[str]:
        """Return the channels not yet claimed for ``user_id`` and mark them claimed."""
        claimed = []
        for channel in channels:
            key = (user_id, channel)
            if key not in seen:
                seen.add(key)
                claimed.append(channel)
        return claimed
