"""Discord notification driver."""

from typing import Any

from apps.notify.drivers.base import NotificationMessage, WebhookNotifyDriver

# Discord rejects embed descriptions longer than this.
MAX_EMBED_DESCRIPTION = 4096


class DiscordNotifyDriver(WebhookNotifyDriver):
    """Driver for Discord webhooks (content + one embed)."""

    name = "discord"
    service_name = "Discord"

    COLOR_MAP = {
        "resolved": 0x00FF00,
        "CRITICAL": 0xFF0000,
        "HIGH": 0xFFA500,
        "LOW": 0x0099FF,
    }

    def build_payload(self, message: NotificationMessage) -> dict[str, Any]:
        return {
            "content": (
                f"{message.emoji} **{message.action}**: "
                f"{message.application_name} - {message.title}"
            ),
            "embeds": [
                {
                    "title": message.title,
                    "description": message.description[:MAX_EMBED_DESCRIPTION],
                    "color": self.color_for(message),
                    "fields": [
                        {"name": "Application", "value": message.application_name, "inline": True},
                        {"name": "Severity", "value": message.severity, "inline": True},
                        {"name": "Status", "value": message.status, "inline": True},
                    ],
                    "timestamp": message.occurred_at.isoformat(),
                }
            ],
        }
