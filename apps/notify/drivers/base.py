"""Base driver and data structures for notification delivery.

Drivers render an incident event into a channel-specific payload and deliver
it (SMTP for email, an HTTP POST for webhook channels). Delivery problems are
reported through the returned result dict; drivers do not raise for them.

Public API:
- NotificationMessage
- BaseNotifyDriver
- WebhookNotifyDriver
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class NotificationMessage:
    """Incident event data every driver renders from."""

    event: str  # "created", "resolved", "reopened"
    incident_id: int
    application_name: str
    title: str
    description: str
    severity: str  # "LOW", "HIGH", "CRITICAL"
    status: str
    occurred_at: datetime

    def __post_init__(self) -> None:
        self.event = (self.event or "").lower()
        self.severity = (self.severity or "").upper()

    @classmethod
    def from_incident(cls, incident, event: str) -> "NotificationMessage":
        occurred_at = incident.started_at
        if event == "resolved" and incident.ended_at:
            occurred_at = incident.ended_at
        return cls(
            event=event,
            incident_id=incident.pk,
            application_name=incident.application.name,
            title=incident.title,
            description=incident.description,
            severity=str(incident.severity),
            status=str(incident.status),
            occurred_at=occurred_at,
        )

    @property
    def is_resolution(self) -> bool:
        return self.event == "resolved"

    @property
    def action(self) -> str:
        return {"resolved": "Resolved", "reopened": "Reopened"}.get(self.event, "Alert")

    @property
    def emoji(self) -> str:
        return "✅" if self.is_resolution else "🚨"

    @property
    def headline(self) -> str:
        return f"{self.action}: {self.application_name} - {self.title}"

    @property
    def formatted_time(self) -> str:
        return self.occurred_at.strftime("%Y-%m-%d %H:%M:%S %Z")


class BaseNotifyDriver(ABC):
    """Abstract base class for notification delivery drivers."""

    name: str = "base"

    # Color per severity; "resolved" overrides severity for resolution events.
    COLOR_MAP: dict[str, Any] = {}

    @abstractmethod
    def validate_config(self, config: dict[str, Any]) -> bool:
        """Validate that the driver configuration is valid."""

    @abstractmethod
    def send(self, message: NotificationMessage, config: dict[str, Any]) -> dict[str, Any]:
        """Send a notification and return result metadata.

        Args:
            message: The incident event to deliver
            config: Driver-specific configuration (address, timeout, ...)

        Returns:
            Dictionary with keys like:
            - success: bool
            - message_id: str (if available)
            - error: str (if failed)
            - metadata: dict (any additional info)
        """

    def color_for(self, message: NotificationMessage) -> Any:
        if message.is_resolution:
            return self.COLOR_MAP["resolved"]
        return self.COLOR_MAP.get(message.severity, self.COLOR_MAP["LOW"])

    def _handle_http_error(self, e: urllib.error.HTTPError, service_name: str) -> dict[str, Any]:
        """Handle HTTP errors consistently across drivers."""
        error_body = e.read().decode("utf-8", errors="replace") if e.fp else str(e)
        logger.error(f"{service_name} HTTP error {e.code}: {error_body}")
        return {"success": False, "error": f"{service_name} API error ({e.code}): {error_body}"}

    def _handle_url_error(self, e: urllib.error.URLError, service_name: str) -> dict[str, Any]:
        """Handle URL errors consistently across drivers."""
        logger.error(f"{service_name} URL error: {e.reason}")
        return {"success": False, "error": f"Failed to connect to {service_name}: {e.reason}"}

    def _handle_exception(self, e: Exception, service_name: str, action: str) -> dict[str, Any]:
        """Handle general exceptions consistently across drivers."""
        logger.exception(f"Failed to {action} {service_name}: {e}")
        return {"success": False, "error": f"Failed to {action} {service_name}: {e}"}


class WebhookNotifyDriver(BaseNotifyDriver):
    """
    Base for drivers that POST a JSON payload to an incoming webhook.

    Subclasses implement ``build_payload``.
    """

    service_name: str = "Webhook"

    def validate_config(self, config: dict[str, Any]) -> bool:
        url = config.get("webhook_url")
        return isinstance(url, str) and url.startswith(("http://", "https://"))

    @abstractmethod
    def build_payload(self, message: NotificationMessage) -> dict[str, Any]:
        """Render the channel-specific webhook body."""

    def send(self, message: NotificationMessage, config: dict[str, Any]) -> dict[str, Any]:
        if not self.validate_config(config):
            return {
                "success": False,
                "error": f"Invalid {self.service_name} configuration (valid webhook_url required)",
            }

        webhook_url = config["webhook_url"]
        timeout = config.get("timeout", 10)

        try:
            payload = self.build_payload(message)
            payload_json = json.dumps(payload, ensure_ascii=False).encode("utf-8")

            request = urllib.request.Request(
                webhook_url,
                data=payload_json,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": "UptimeIncidents/1.0",
                },
                method="POST",
            )

            with urllib.request.urlopen(request, timeout=timeout) as response:
                status_code = response.getcode()

            logger.info(
                f"{self.service_name} notification sent for incident {message.incident_id} "
                f"({message.event})"
            )
            return {
                "success": True,
                "message_id": f"{self.name}_{message.incident_id}_{message.event}",
                "metadata": {
                    "status_code": status_code,
                    "severity": message.severity,
                },
            }

        except urllib.error.HTTPError as e:
            return self._handle_http_error(e, self.service_name)
        except urllib.error.URLError as e:
            return self._handle_url_error(e, self.service_name)
        except Exception as e:
            return self._handle_exception(e, self.service_name, "send notification to")
