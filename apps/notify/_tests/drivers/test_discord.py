"""Tests for the Discord embed payload."""

from django.test import SimpleTestCase

from apps.notify._tests.drivers.test_base import WHEN, _make_msg
from apps.notify.drivers.discord import MAX_EMBED_DESCRIPTION, DiscordNotifyDriver


class DiscordPayloadTests(SimpleTestCase):
    def setUp(self):
        self.driver = DiscordNotifyDriver()

    def test_embed_shape(self):
        payload = self.driver.build_payload(_make_msg())

        self.assertEqual(payload["content"], "🚨 **Alert**: Shop - Server Error")
        embed = payload["embeds"][0]
        self.assertEqual(embed["title"], "Server Error")
        self.assertEqual(embed["color"], 0xFFA500)
        self.assertEqual(embed["timestamp"], WHEN.isoformat())
        fields = {f["name"]: f for f in embed["fields"]}
        self.assertEqual(fields["Application"]["value"], "Shop")
        self.assertTrue(fields["Severity"]["inline"])

    def test_resolved_and_critical_colors(self):
        resolved = self.driver.build_payload(_make_msg(event="resolved"))
        critical = self.driver.build_payload(_make_msg(severity="CRITICAL"))
        low = self.driver.build_payload(_make_msg(severity="LOW"))

        self.assertEqual(resolved["embeds"][0]["color"], 0x00FF00)
        self.assertEqual(critical["embeds"][0]["color"], 0xFF0000)
        self.assertEqual(low["embeds"][0]["color"], 0x0099FF)

    def test_long_description_is_truncated(self):
        payload = self.driver.build_payload(_make_msg(description="x" * 5000))
        self.assertEqual(len(payload["embeds"][0]["description"]), MAX_EMBED_DESCRIPTION)
