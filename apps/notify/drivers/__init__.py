"""
Notification drivers, one per delivery channel.
"""

from apps.notify.drivers.base import BaseNotifyDriver, NotificationMessage, WebhookNotifyDriver
from apps.notify.drivers.discord import DiscordNotifyDriver
from apps.notify.drivers.email import EmailNotifyDriver
from apps.notify.drivers.slack import SlackNotifyDriver
from apps.notify.drivers.teams import TeamsNotifyDriver

__all__ = [
    "NotificationMessage",
    "BaseNotifyDriver",
    "WebhookNotifyDriver",
    "DRIVER_REGISTRY",
    "is_notify_enabled",
]

# Registry of available notification drivers, keyed by channel name
DRIVER_REGISTRY: dict[str, type[BaseNotifyDriver]] = {
    "email": EmailNotifyDriver,
    "slack": SlackNotifyDriver,
    "teams": TeamsNotifyDriver,
    "discord": DiscordNotifyDriver,
}


def is_notify_enabled(driver_name: str) -> bool:
    """
    Check if a notification driver is enabled.

    Disabled when:
    - NOTIFY_SKIP_ALL=True, or
    - driver_name is in NOTIFY_SKIP

    Args:
        driver_name: Name of the driver to check.

    Returns:
        True if the driver is enabled, False if skipped.
    """
    from django.conf import settings

    if getattr(settings, "NOTIFY_SKIP_ALL", False):
        return False

    skip_list = getattr(settings, "NOTIFY_SKIP", [])
    return driver_name not in skip_list

