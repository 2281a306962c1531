"""Microsoft Teams notification driver (Office 365 connector MessageCard)."""

from typing import Any

from apps.notify.drivers.base import NotificationMessage, WebhookNotifyDriver


class TeamsNotifyDriver(WebhookNotifyDriver):
    """Driver for Teams incoming webhooks."""

    name = "teams"
    service_name = "Teams"

    COLOR_MAP = {
        "resolved": "00FF00",
        "CRITICAL": "FF0000",
        "HIGH": "FFA500",
        "LOW": "0078D4",
    }

    def build_payload(self, message: NotificationMessage) -> dict[str, Any]:
        return {
            "@type": "MessageCard",
            "@context": "http://schema.org/extensions",
            "themeColor": self.color_for(message),
            "summary": message.headline,
            "sections": [
                {
                    "activityTitle": f"{message.emoji} {message.headline}",
                    "activitySubtitle": message.description,
                    "facts": [
                        {"name": "Application", "value": message.application_name},
                        {"name": "Incident", "value": message.title},
                        {"name": "Severity", "value": message.severity},
                        {"name": "Status", "value": message.status},
                        {"name": "Time", "value": message.formatted_time},
                    ],
                }
            ],
        }
