"""Tests for the monitoring scheduler and the single-flight lock."""

from datetime import timedelta
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone

from apps.monitoring._tests.helpers import make_application, make_group, make_incident, make_user
from apps.monitoring.locks import MONITORING_PASS_LOCK, single_flight
from apps.monitoring.models import Application
from apps.monitoring.scheduler import MonitoringScheduler, is_due, last_check_time


class DueCheckTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.t0 = timezone.now() - timedelta(hours=1)
        self.application = make_application(self.user, monitoring_interval=5)
        Application.objects.filter(pk=self.application.pk).update(created_at=self.t0)
        self.application.refresh_from_db()

    def test_boundary_is_inclusive(self):
        self.assertFalse(is_due(self.application, self.t0 + timedelta(minutes=4)))
        self.assertFalse(is_due(self.application, self.t0 + timedelta(minutes=4, seconds=59)))
        self.assertTrue(is_due(self.application, self.t0 + timedelta(minutes=5)))
        self.assertTrue(is_due(self.application, self.t0 + timedelta(minutes=6)))

    def test_latest_incident_start_is_the_last_check(self):
        started = self.t0 + timedelta(minutes=30)
        make_incident(self.application, started_at=started)

        self.assertEqual(last_check_time(self.application), started)
        self.assertFalse(is_due(self.application, started + timedelta(minutes=4)))
        self.assertTrue(is_due(self.application, started + timedelta(minutes=5)))

    def test_annotated_queryset_matches_direct_lookup(self):
        started = self.t0 + timedelta(minutes=10)
        make_incident(self.application, started_at=started)

        annotated = MonitoringScheduler().candidates().get(pk=self.application.pk)

        self.assertEqual(annotated.last_incident_started_at, started)
        self.assertEqual(last_check_time(annotated), last_check_time(self.application))


@patch("apps.monitoring.tasks.monitor_application.delay")
class MonitoringSchedulerTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = make_user()
        self.now = timezone.now()
        self.group = make_group(self.user)
        self.due = make_application(self.user, name="Due", application_group=self.group)
        self.fresh = make_application(self.user, name="Fresh")
        Application.objects.filter(pk=self.due.pk).update(
            created_at=self.now - timedelta(minutes=10)
        )
        Application.objects.filter(pk=self.fresh.pk).update(
            created_at=self.now - timedelta(minutes=1)
        )

    def test_only_due_applications_are_queued(self, mock_delay):
        summary = MonitoringScheduler().run(now=self.now)

        mock_delay.assert_called_once_with(self.due.pk)
        self.assertEqual(summary.processed, 1)
        self.assertEqual(summary.skipped, 1)
        self.assertEqual(summary.total, 2)
        self.assertFalse(summary.locked)

    def test_force_queues_everything(self, mock_delay):
        summary = MonitoringScheduler().run(force=True, now=self.now)

        self.assertEqual(mock_delay.call_count, 2)
        self.assertEqual(summary.processed, 2)
        self.assertEqual(summary.skipped, 0)

    def test_filters(self, mock_delay):
        by_app = MonitoringScheduler().run(application_id=self.fresh.pk, force=True, now=self.now)
        by_group = MonitoringScheduler().run(group_id=self.group.pk, force=True, now=self.now)

        self.assertEqual(by_app.total, 1)
        self.assertEqual(by_group.total, 1)
        self.assertEqual(
            [call.args for call in mock_delay.call_args_list], [(self.fresh.pk,), (self.due.pk,)]
        )

    def test_enqueue_failure_does_not_stop_the_pass(self, mock_delay):
        mock_delay.side_effect = [ConnectionError("broker down"), None]

        summary = MonitoringScheduler().run(force=True, now=self.now)

        self.assertEqual(mock_delay.call_count, 2)
        self.assertEqual(summary.failed, 1)
        self.assertEqual(summary.processed, 1)
        self.assertEqual(summary.total, 2)

    def test_overlapping_pass_is_skipped(self, mock_delay):
        with single_flight(MONITORING_PASS_LOCK) as acquired:
            self.assertTrue(acquired)
            summary = MonitoringScheduler().run(force=True, now=self.now)

        self.assertTrue(summary.locked)
        mock_delay.assert_not_called()

        # Released afterwards.
        self.assertEqual(MonitoringScheduler().run(force=True, now=self.now).processed, 2)


class SingleFlightTests(TestCase):
    def setUp(self):
        cache.clear()

    def test_second_holder_is_refused_until_release(self):
        with single_flight("test-lock", timeout=60) as first:
            with single_flight("test-lock", timeout=60) as second:
                self.assertTrue(first)
                self.assertFalse(second)
            # The refused holder must not release the lock.
            self.assertIsNotNone(cache.get("test-lock"))
        self.assertIsNone(cache.get("test-lock"))
