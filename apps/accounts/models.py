"""
User model: the authentication principal and the holder of default
notification channel settings.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    Application owner / subscriber.

    The notification fields are the fallback delivery addresses used when a
    subscription does not carry its own email or webhook URL.
    """

    notification_email = models.EmailField(
        blank=True,
        default="",
        help_text="Address that receives incident emails.",
    )
    slack_webhook_url = models.URLField(
        max_length=2048,
        blank=True,
        default="",
        help_text="Default Slack incoming webhook.",
    )
    teams_webhook_url = models.URLField(
        max_length=2048,
        blank=True,
        default="",
        help_text="Default Microsoft Teams incoming webhook.",
    )
    discord_webhook_url = models.URLField(
        max_length=2048,
        blank=True,
        default="",
        help_text="Default Discord webhook.",
    )

    def __str__(self):
        return self.username

    @property
    def channel_addresses(self) -> dict[str, str]:
        """
        Configured delivery address per channel (empty string when unset).

        Email falls back to the account email when no notification email is set.
        """
        return {
            "email": self.notification_email or self.email,
            "slack": self.slack_webhook_url,
            "teams": self.teams_webhook_url,
            "discord": self.discord_webhook_url,
        }

    @property
    def configured_channels(self) -> list[str]:
        return [channel for channel, address in self.channel_addresses.items() if address]
