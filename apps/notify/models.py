"""
Subscription models: who gets notified about which application or group,
and through which channels.
"""

from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class NotificationChannel(models.TextChoices):
    """Delivery channels a subscription can use."""

    EMAIL = "email", "Email"
    SLACK = "slack", "Slack"
    TEAMS = "teams", "Microsoft Teams"
    DISCORD = "discord", "Discord"


WEBHOOK_CHANNELS = (
    NotificationChannel.SLACK,
    NotificationChannel.TEAMS,
    NotificationChannel.DISCORD,
)


def default_channels() -> list[str]:
    return [NotificationChannel.EMAIL.value]


def normalize_channels(channels) -> list[str]:
    """Drop unknown and duplicate channels and make sure email is present."""
    valid = set(NotificationChannel.values)
    normalized: list[str] = []
    for channel in channels or []:
        channel = str(channel).strip().lower()
        if channel in valid and channel not in normalized:
            normalized.append(channel)
    if NotificationChannel.EMAIL.value not in normalized:
        normalized.insert(0, NotificationChannel.EMAIL.value)
    return normalized


@dataclass(frozen=True)
class ApplicationTarget:
    """Subscription to a single application."""

    application_id: int


@dataclass(frozen=True)
class GroupTarget:
    """Subscription to every application of a group."""

    group_id: int


SubscriptionTarget = ApplicationTarget | GroupTarget


class SubscriptionQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def for_target(self, target: SubscriptionTarget):
        if isinstance(target, ApplicationTarget):
            return self.filter(application_id=target.application_id)
        if isinstance(target, GroupTarget):
            return self.filter(application_group_id=target.group_id)
        raise TypeError(f"Unsupported subscription target: {target!r}")


class Subscription(models.Model):
    """
    A user's request to be notified about one application or one group.

    Exactly one of ``application`` / ``application_group`` is set. A user has
    at most one subscription per target. ``email`` and ``webhook_url``
    override the user's default addresses when set.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="subscriptions",
    )
    application = models.ForeignKey(
        "monitoring.Application",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="subscriptions",
    )
    application_group = models.ForeignKey(
        "monitoring.ApplicationGroup",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="subscriptions",
    )

    notification_channels = models.JSONField(
        default=default_channels,
        blank=True,
        help_text="Channels to notify, e.g. ['email', 'slack']. Email is always included.",
    )
    email = models.EmailField(
        blank=True,
        default="",
        help_text="Overrides the user's notification email.",
    )
    webhook_url = models.URLField(
        max_length=2048,
        blank=True,
        default="",
        help_text="Overrides the user's webhook for the subscription's webhook channels.",
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
    )
    updated_at = models.DateTimeField(
        auto_now=True,
    )

    objects = SubscriptionQuerySet.as_manager()

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(application__isnull=False, application_group__isnull=True)
                    | models.Q(application__isnull=True, application_group__isnull=False)
                ),
                name="subscription_exactly_one_target",
            ),
            models.UniqueConstraint(
                fields=["user", "application"],
                condition=models.Q(application__isnull=False),
                name="unique_application_subscription_per_user",
            ),
            models.UniqueConstraint(
                fields=["user", "application_group"],
                condition=models.Q(application_group__isnull=False),
                name="unique_group_subscription_per_user",
            ),
        ]

    def __str__(self):
        status = "active" if self.is_active else "inactive"
        return f"{self.user} -> {self.target_label} [{', '.join(self.channels)}] ({status})"

    def save(self, *args, **kwargs):
        self.notification_channels = normalize_channels(self.notification_channels)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "notification_channels" not in update_fields:
            kwargs["update_fields"] = [*update_fields, "notification_channels"]
        super().save(*args, **kwargs)

    def clean(self):
        super().clean()
        if bool(self.application_id) == bool(self.application_group_id):
            raise ValidationError("A subscription targets exactly one application or group.")

    @property
    def target(self) -> SubscriptionTarget:
        if self.application_id:
            return ApplicationTarget(self.application_id)
        return GroupTarget(self.application_group_id)

    @property
    def target_label(self) -> str:
        if self.application_id:
            return f"application:{self.application_id}"
        return f"group:{self.application_group_id}"

    @property
    def channels(self) -> list[str]:
        return normalize_channels(self.notification_channels)

    def has_channel(self, channel: str) -> bool:
        return channel in self.channels

    def set_channels(self, channels, save: bool = True):
        self.notification_channels = normalize_channels(channels)
        if save:
            self.save(update_fields=["notification_channels", "updated_at"])

    def add_channel(self, channel: str, save: bool = True):
        if not self.has_channel(channel):
            self.set_channels([*self.channels, channel], save=save)

    def remove_channel(self, channel: str, save: bool = True):
        """Remove a channel. Email cannot be removed."""
        self.set_channels([c for c in self.channels if c != channel], save=save)
