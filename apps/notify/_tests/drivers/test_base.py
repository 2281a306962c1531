"""Tests for NotificationMessage and the shared webhook driver behaviour."""

import io
import json
import socket
import urllib.error
from datetime import datetime
from datetime import timezone as dt_timezone
from unittest.mock import MagicMock, patch

from django.test import SimpleTestCase

from apps.notify.drivers.base import NotificationMessage
from apps.notify.drivers.slack import SlackNotifyDriver

WHEN = datetime(2026, 1, 2, 3, 4, 5, tzinfo=dt_timezone.utc)
VALID_WEBHOOK = "https://hooks.slack.com/services/T00/B00/xxx"


def _make_msg(**kwargs):
    """Create a NotificationMessage with sensible defaults."""
    defaults = {
        "event": "created",
        "incident_id": 42,
        "application_name": "Shop",
        "title": "Server Error",
        "description": "Application returned HTTP 503. Error: down",
        "severity": "HIGH",
        "status": "OPEN",
        "occurred_at": WHEN,
    }
    defaults.update(kwargs)
    return NotificationMessage(**defaults)


def _mock_response(status_code=200):
    mock_resp = MagicMock()
    mock_resp.getcode.return_value = status_code
    mock_resp.__enter__ = MagicMock(return_value=mock_resp)
    mock_resp.__exit__ = MagicMock(return_value=False)
    return mock_resp


class NotificationMessageTests(SimpleTestCase):
    def test_event_and_severity_are_normalised(self):
        msg = _make_msg(event="RESOLVED", severity="critical")
        self.assertEqual(msg.event, "resolved")
        self.assertEqual(msg.severity, "CRITICAL")

    def test_created_event_is_an_alert(self):
        msg = _make_msg()
        self.assertFalse(msg.is_resolution)
        self.assertEqual(msg.action, "Alert")
        self.assertEqual(msg.emoji, "🚨")
        self.assertEqual(msg.headline, "Alert: Shop - Server Error")

    def test_resolved_event(self):
        msg = _make_msg(event="resolved")
        self.assertTrue(msg.is_resolution)
        self.assertEqual(msg.action, "Resolved")
        self.assertEqual(msg.emoji, "✅")

    def test_reopened_event_uses_alert_emoji(self):
        msg = _make_msg(event="reopened")
        self.assertEqual(msg.action, "Reopened")
        self.assertEqual(msg.emoji, "🚨")

    def test_formatted_time(self):
        self.assertEqual(_make_msg().formatted_time, "2026-01-02 03:04:05 UTC")


class ColorForTests(SimpleTestCase):
    def test_resolution_overrides_severity(self):
        driver = SlackNotifyDriver()
        self.assertEqual(driver.color_for(_make_msg(event="resolved", severity="CRITICAL")), "good")

    def test_unknown_severity_falls_back_to_low(self):
        driver = SlackNotifyDriver()
        self.assertEqual(driver.color_for(_make_msg(severity="weird")), "#439FE0")


class WebhookSendTests(SimpleTestCase):
    def setUp(self):
        self.driver = SlackNotifyDriver()
        self.config = {"webhook_url": VALID_WEBHOOK, "timeout": 5}

    def test_rejects_non_http_url(self):
        self.assertFalse(self.driver.validate_config({"webhook_url": "ftp://example.com/hook"}))
        self.assertFalse(self.driver.validate_config({"webhook_url": 12345}))
        self.assertFalse(self.driver.validate_config({}))

    def test_invalid_config_returns_error(self):
        result = self.driver.send(_make_msg(), {})
        self.assertFalse(result["success"])
        self.assertIn("Invalid Slack configuration", result["error"])

    @patch("apps.notify.drivers.base.urllib.request.urlopen")
    def test_posts_json_with_timeout(self, mock_urlopen):
        mock_urlopen.return_value = _mock_response(200)

        result = self.driver.send(_make_msg(), self.config)

        self.assertTrue(result["success"])
        self.assertEqual(result["message_id"], "slack_42_created")
        self.assertEqual(result["metadata"]["status_code"], 200)
        request = mock_urlopen.call_args[0][0]
        self.assertEqual(request.get_method(), "POST")
        self.assertEqual(request.full_url, VALID_WEBHOOK)
        self.assertEqual(request.get_header("Content-type"), "application/json")
        self.assertEqual(mock_urlopen.call_args[1]["timeout"], 5)
        body = json.loads(request.data.decode("utf-8"))
        self.assertIn("Server Error", body["text"])

    @patch("apps.notify.drivers.base.urllib.request.urlopen")
    def test_http_error_is_reported(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.HTTPError(
            VALID_WEBHOOK, 404, "Not Found", hdrs=None, fp=io.BytesIO(b"no_team")
        )

        result = self.driver.send(_make_msg(), self.config)

        self.assertFalse(result["success"])
        self.assertIn("404", result["error"])
        self.assertIn("no_team", result["error"])

    @patch("apps.notify.drivers.base.urllib.request.urlopen")
    def test_url_error_is_reported(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.URLError("Name or service not known")

        result = self.driver.send(_make_msg(), self.config)

        self.assertFalse(result["success"])
        self.assertIn("Failed to connect to Slack", result["error"])

    @patch("apps.notify.drivers.base.urllib.request.urlopen")
    def test_timeout_is_reported(self, mock_urlopen):
        mock_urlopen.side_effect = socket.timeout("timed out")

        result = self.driver.send(_make_msg(), self.config)

        self.assertFalse(result["success"])
        self.assertIn("timed out", result["error"])
