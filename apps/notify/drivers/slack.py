"""Slack notification driver."""

from typing import Any

from apps.notify.drivers.base import NotificationMessage, WebhookNotifyDriver


class SlackNotifyDriver(WebhookNotifyDriver):
    """
    Driver for Slack incoming webhooks.

    Payload: ``{text, attachments: [{color, fields: [{title, value, short}]}]}``.
    """

    name = "slack"
    service_name = "Slack"

    COLOR_MAP = {
        "resolved": "good",
        "CRITICAL": "danger",
        "HIGH": "warning",
        "LOW": "#439FE0",
    }

    def build_payload(self, message: NotificationMessage) -> dict[str, Any]:
        return {
            "text": (
                f"{message.emoji} *{message.action}*: "
                f"{message.application_name} - {message.title}"
            ),
            "attachments": [
                {
                    "color": self.color_for(message),
                    "fields": [
                        {"title": "Application", "value": message.application_name, "short": True},
                        {"title": "Incident", "value": message.title, "short": True},
                        {"title": "Severity", "value": message.severity, "short": True},
                        {"title": "Status", "value": message.status, "short": True},
                        {"title": "Time", "value": message.formatted_time, "short": True},
                        {"title": "Description", "value": message.description, "short": False},
                    ],
                }
            ],
        }
