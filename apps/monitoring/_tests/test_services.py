"""Tests for application and group lifecycle services."""

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from apps.incidents.models import Incident
from apps.monitoring._tests.helpers import make_incident, make_user
from apps.monitoring.models import Application, ApplicationGroup
from apps.monitoring.services import (
    create_application,
    create_application_group,
    delete_application_group,
)
from apps.notify.models import Subscription


class CreateApplicationTests(TestCase):
    def setUp(self):
        self.user = make_user()

    def test_owner_is_subscribed_by_email(self):
        application = create_application(self.user, "Shop", "https://shop.example.com")

        subscription = Subscription.objects.get()
        self.assertEqual(subscription.user, self.user)
        self.assertEqual(subscription.application, application)
        self.assertEqual(subscription.channels, ["email"])

    @override_settings(MONITORING_DEFAULT_INTERVAL=10)
    def test_defaults(self):
        application = create_application(self.user, "Shop", "https://shop.example.com")
        self.assertEqual(application.expected_http_code, 200)
        self.assertEqual(application.monitoring_interval, 10)
        self.assertEqual(application.monitor_url, "https://shop.example.com")

    def test_invalid_fields_are_rejected(self):
        with self.assertRaises(ValidationError):
            create_application(self.user, "Shop", "not a url")
        with self.assertRaises(ValidationError):
            create_application(
                self.user, "Shop", "https://shop.example.com", expected_http_code=99
            )
        self.assertFalse(Application.objects.exists())
        self.assertFalse(Subscription.objects.exists())

    def test_group_of_another_user_is_rejected(self):
        foreign = ApplicationGroup.objects.create(user=make_user("other"), name="Theirs")
        with self.assertRaises(ValidationError):
            create_application(
                self.user, "Shop", "https://shop.example.com", application_group=foreign
            )

    def test_delete_cascades_incidents_and_subscriptions(self):
        application = create_application(self.user, "Shop", "https://shop.example.com")
        make_incident(application)

        application.delete()

        self.assertFalse(Incident.objects.exists())
        self.assertFalse(Subscription.objects.exists())


class ApplicationGroupLifecycleTests(TestCase):
    def setUp(self):
        self.user = make_user()

    def test_owner_is_subscribed_by_email(self):
        group = create_application_group(self.user, "Production", "Customer facing")

        subscription = Subscription.objects.get()
        self.assertEqual(subscription.application_group, group)
        self.assertEqual(subscription.channels, ["email"])

    def test_name_is_unique_per_user(self):
        create_application_group(self.user, "Production")
        with self.assertRaises(ValidationError):
            create_application_group(self.user, "Production")

        create_application_group(make_user("other"), "Production")
        self.assertEqual(ApplicationGroup.objects.count(), 2)

    def test_delete_detaches_applications(self):
        group = create_application_group(self.user, "Production")
        application = create_application(
            self.user, "Shop", "https://shop.example.com", application_group=group
        )

        detached = delete_application_group(group)

        application.refresh_from_db()
        self.assertEqual(detached, 1)
        self.assertIsNone(application.application_group)
        self.assertFalse(ApplicationGroup.objects.exists())
        self.assertFalse(Subscription.objects.filter(application_group__isnull=False).exists())
        self.assertTrue(Subscription.objects.filter(application=application).exists())
