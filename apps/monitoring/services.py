"""
Application and group lifecycle.

Creating an application or a group subscribes its owner to it by email as an
explicit second step in the same transaction.
"""

import logging

from django.conf import settings
from django.db import transaction

from apps.monitoring.models import Application, ApplicationGroup
from apps.notify.models import NotificationChannel, Subscription

logger = logging.getLogger(__name__)


def subscribe_owner(user, *, application=None, application_group=None) -> Subscription:
    """Email subscription for the owner of a new application or group."""
    subscription, _ = Subscription.objects.get_or_create(
        user=user,
        application=application,
        application_group=application_group,
        defaults={"notification_channels": [NotificationChannel.EMAIL.value]},
    )
    return subscription


def create_application(
    user,
    name: str,
    url: str,
    *,
    url_to_watch: str = "",
    expected_http_code: int = 200,
    monitoring_interval: int | None = None,
    application_group: ApplicationGroup | None = None,
) -> Application:
    """
    Create an application owned by ``user`` and subscribe the owner to it.

    Raises:
        ValidationError: if the fields are invalid or the group belongs to
            another user.
    """
    if monitoring_interval is None:
        monitoring_interval = getattr(settings, "MONITORING_DEFAULT_INTERVAL", 5)

    application = Application(
        user=user,
        name=name,
        url=url,
        url_to_watch=url_to_watch,
        expected_http_code=expected_http_code,
        monitoring_interval=monitoring_interval,
        application_group=application_group,
    )
    application.full_clean()

    with transaction.atomic():
        application.save()
        subscribe_owner(user, application=application)

    logger.info(f"Application created: {application.pk} {application.name}")
    return application


def create_application_group(user, name: str, description: str = "") -> ApplicationGroup:
    """
    Create a group owned by ``user`` and subscribe the owner to it.

    Raises:
        ValidationError: if ``user`` already has a group with this name.
    """
    group = ApplicationGroup(user=user, name=name, description=description)
    group.full_clean()

    with transaction.atomic():
        group.save()
        subscribe_owner(user, application_group=group)

    logger.info(f"Application group created: {group.pk} {group.name}")
    return group


def delete_application_group(group: ApplicationGroup) -> int:
    """
    Delete a group. Its applications stay and are detached from it; the
    group's subscriptions are deleted with it.

    Returns:
        Number of applications that were detached.
    """
    with transaction.atomic():
        detached = group.applications.update(application_group=None)
        group_id, name = group.pk, group.name
        group.delete()

    logger.info(f"Application group deleted: {group_id} {name} ({detached} detached)")
    return detached
