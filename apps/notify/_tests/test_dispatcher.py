"""Tests for NotificationDispatcher fan-out and failure isolation."""

import io
import json
import urllib.error
from unittest.mock import MagicMock, patch

from django.test import TestCase, override_settings

from apps.monitoring._tests.helpers import (
    make_application,
    make_group,
    make_incident,
    make_user,
)
from apps.notify.dispatcher import NotificationDispatcher
from apps.notify.models import Subscription
from apps.notify.subscriptions import DeliveryTarget

SLACK_URL = "https://hooks.slack.com/services/T/B/x"
DISCORD_URL = "https://discord.com/api/webhooks/1/abc"
TEAMS_URL = "https://example.webhook.office.com/webhookb2/xyz"


def _ok_response():
    mock_resp = MagicMock()
    mock_resp.getcode.return_value = 200
    mock_resp.__enter__ = MagicMock(return_value=mock_resp)
    mock_resp.__exit__ = MagicMock(return_value=False)
    return mock_resp


def _sent_bodies(mock_urlopen):
    return {
        call.args[0].full_url: json.loads(call.args[0].data.decode("utf-8"))
        for call in mock_urlopen.call_args_list
    }


@override_settings(NOTIFY_SKIP_ALL=False, NOTIFY_SKIP=[])
class DispatcherFanOutTests(TestCase):
    def setUp(self):
        # Nobody has an email address, so only webhook channels deliver.
        self.owner = make_user("owner", email="")
        self.group = make_group(self.owner)
        self.application = make_application(self.owner, application_group=self.group)
        self.incident = make_incident(self.application, title="Server Error")

        Subscription.objects.create(
            user=make_user("slacker", email="", slack_webhook_url=SLACK_URL),
            application=self.application,
            notification_channels=["slack"],
        )
        Subscription.objects.create(
            user=make_user("gamer", email="", discord_webhook_url=DISCORD_URL),
            application=self.application,
            notification_channels=["discord"],
        )
        Subscription.objects.create(
            user=make_user("suit", email="", teams_webhook_url=TEAMS_URL),
            application_group=self.group,
            notification_channels=["teams"],
        )

    @patch("apps.notify.drivers.base.urllib.request.urlopen")
    def test_one_webhook_call_per_channel(self, mock_urlopen):
        mock_urlopen.return_value = _ok_response()

        result = NotificationDispatcher().dispatch(self.incident, "created")

        self.assertEqual(mock_urlopen.call_count, 3)
        self.assertEqual(result.sent, 3)
        self.assertEqual(result.failed, 0)
        # Each subscription also carries email, which has no address here.
        self.assertEqual(result.skipped, 3)

        bodies = _sent_bodies(mock_urlopen)
        self.assertEqual(set(bodies), {SLACK_URL, DISCORD_URL, TEAMS_URL})
        for body in bodies.values():
            self.assertIn("Server Error", json.dumps(body, ensure_ascii=False))
        self.assertIn("attachments", bodies[SLACK_URL])
        self.assertIn("embeds", bodies[DISCORD_URL])
        self.assertEqual(bodies[TEAMS_URL]["@type"], "MessageCard")

    @patch("apps.notify.drivers.base.urllib.request.urlopen")
    def test_failing_webhook_does_not_block_others(self, mock_urlopen):
        def _respond(request, timeout=None):
            if request.full_url == SLACK_URL:
                raise urllib.error.HTTPError(
                    SLACK_URL, 404, "Not Found", hdrs=None, fp=io.BytesIO(b"no_service")
                )
            return _ok_response()

        mock_urlopen.side_effect = _respond

        result = NotificationDispatcher().dispatch(self.incident, "resolved")

        self.assertEqual(mock_urlopen.call_count, 3)
        self.assertEqual(result.sent, 2)
        self.assertEqual(result.failed, 1)
        self.assertTrue(result.has_errors)
        self.assertIn("slack", result.errors[0])

    @patch("apps.notify.drivers.base.urllib.request.urlopen")
    def test_unexpected_driver_exception_is_contained(self, mock_urlopen):
        mock_urlopen.return_value = _ok_response()

        with patch(
            "apps.notify.drivers.discord.DiscordNotifyDriver.send",
            side_effect=RuntimeError("boom"),
        ):
            result = NotificationDispatcher().dispatch(self.incident, "created")

        self.assertEqual(result.sent, 2)
        self.assertEqual(result.failed, 1)
        self.assertIn("boom", result.errors[0])

    @override_settings(NOTIFY_SKIP=["slack"])
    @patch("apps.notify.drivers.base.urllib.request.urlopen")
    def test_disabled_channel_is_skipped(self, mock_urlopen):
        mock_urlopen.return_value = _ok_response()

        result = NotificationDispatcher().dispatch(self.incident, "created")

        self.assertEqual(mock_urlopen.call_count, 2)
        self.assertNotIn(SLACK_URL, _sent_bodies(mock_urlopen))
        self.assertEqual(result.sent, 2)


@override_settings(NOTIFY_SKIP_ALL=False, NOTIFY_SKIP=[])
class DispatcherTargetTests(TestCase):
    def setUp(self):
        self.owner = make_user("owner")
        self.application = make_application(self.owner)
        self.incident = make_incident(self.application)

    @patch("apps.notify.drivers.base.urllib.request.urlopen")
    def test_missing_webhook_address_is_skipped(self, mock_urlopen):
        target = DeliveryTarget(user_id=self.owner.pk, channels=["slack"], addresses={})

        result = NotificationDispatcher().dispatch(self.incident, "created", targets=[target])

        mock_urlopen.assert_not_called()
        self.assertEqual(result.skipped, 1)
        self.assertEqual(result.failed, 0)

    @override_settings(
        NOTIFY_EMAIL={"smtp_host": "smtp.example.local", "from_address": "alerts@example.local"}
    )
    @patch("apps.notify.drivers.email.smtplib.SMTP")
    def test_email_is_sent_to_target_address(self, mock_smtp):
        server = MagicMock()
        mock_smtp.return_value = server
        target = DeliveryTarget(
            user_id=self.owner.pk,
            channels=["email"],
            addresses={"email": "owner@example.com"},
        )

        result = NotificationDispatcher().dispatch(self.incident, "created", targets=[target])

        self.assertEqual(result.sent, 1)
        self.assertEqual(server.sendmail.call_args[0][1], ["owner@example.com"])

    @override_settings(NOTIFY_WEBHOOK_TIMEOUT=3)
    def test_webhook_config_carries_timeout(self):
        config = NotificationDispatcher.config_for("teams", TEAMS_URL)
        self.assertEqual(config, {"webhook_url": TEAMS_URL, "timeout": 3})

    @override_settings(NOTIFY_SKIP_ALL=True)
    def test_everything_skipped_when_notifications_disabled(self):
        result = NotificationDispatcher().dispatch(self.incident, "created")
        # The owner's account email is the only target.
        self.assertEqual(result.skipped, 1)
        self.assertEqual(result.sent, 0)
