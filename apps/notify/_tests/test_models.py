"""Tests for Subscription and the channel helpers."""

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import SimpleTestCase, TestCase

from apps.monitoring._tests.helpers import make_application, make_group, make_user
from apps.notify.models import (
    ApplicationTarget,
    GroupTarget,
    Subscription,
    normalize_channels,
)


class NormalizeChannelsTests(SimpleTestCase):
    def test_email_is_always_added_first(self):
        self.assertEqual(normalize_channels(["slack"]), ["email", "slack"])
        self.assertEqual(normalize_channels([]), ["email"])
        self.assertEqual(normalize_channels(None), ["email"])

    def test_unknown_and_duplicate_channels_are_dropped(self):
        self.assertEqual(
            normalize_channels(["slack", "SLACK", "pager", "discord", "email"]),
            ["slack", "discord", "email"],
        )


class SubscriptionModelTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.application = make_application(self.user)
        self.group = make_group(self.user)

    def test_channels_are_normalised_on_save(self):
        sub = Subscription.objects.create(
            user=self.user,
            application=self.application,
            notification_channels=["teams", "bogus"],
        )
        sub.refresh_from_db()
        self.assertEqual(sub.notification_channels, ["email", "teams"])

    def test_default_channels_is_email(self):
        sub = Subscription.objects.create(user=self.user, application=self.application)
        self.assertEqual(sub.channels, ["email"])
        self.assertTrue(sub.is_active)

    def test_add_and_remove_channel(self):
        sub = Subscription.objects.create(user=self.user, application=self.application)

        sub.add_channel("slack")
        sub.refresh_from_db()
        self.assertTrue(sub.has_channel("slack"))

        sub.remove_channel("slack")
        sub.remove_channel("email")
        sub.refresh_from_db()
        self.assertEqual(sub.channels, ["email"])

    def test_target_is_tagged(self):
        app_sub = Subscription.objects.create(user=self.user, application=self.application)
        group_sub = Subscription.objects.create(user=self.user, application_group=self.group)

        self.assertEqual(app_sub.target, ApplicationTarget(self.application.pk))
        self.assertEqual(group_sub.target, GroupTarget(self.group.pk))
        self.assertEqual(
            list(Subscription.objects.for_target(GroupTarget(self.group.pk))), [group_sub]
        )

    def test_one_subscription_per_user_and_target(self):
        Subscription.objects.create(user=self.user, application=self.application)
        with self.assertRaises(IntegrityError), transaction.atomic():
            Subscription.objects.create(user=self.user, application=self.application)

    def test_exactly_one_target_is_enforced(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            Subscription.objects.create(user=self.user)
        with self.assertRaises(IntegrityError), transaction.atomic():
            Subscription.objects.create(
                user=self.user, application=self.application, application_group=self.group
            )

    def test_clean_requires_one_target(self):
        with self.assertRaises(ValidationError):
            Subscription(user=self.user).clean()

    def test_active_queryset(self):
        Subscription.objects.create(user=self.user, application=self.application, is_active=False)
        self.assertFalse(Subscription.objects.active().exists())

    def test_application_delete_cascades(self):
        Subscription.objects.create(user=self.user, application=self.application)
        self.application.delete()
        self.assertFalse(Subscription.objects.exists())
