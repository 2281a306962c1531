import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import apps.notify.models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("monitoring", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Subscription",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "notification_channels",
                    models.JSONField(
                        blank=True,
                        default=apps.notify.models.default_channels,
                        help_text=(
                            "Channels to notify, e.g. ['email', 'slack']. "
                            "Email is always included."
                        ),
                    ),
                ),
                (
                    "email",
                    models.EmailField(
                        blank=True,
                        default="",
                        help_text="Overrides the user's notification email.",
                        max_length=254,
                    ),
                ),
                (
                    "webhook_url",
                    models.URLField(
                        blank=True,
                        default="",
                        help_text=(
                            "Overrides the user's webhook for the subscription's "
                            "webhook channels."
                        ),
                        max_length=2048,
                    ),
                ),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "application",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="subscriptions",
                        to="monitoring.application",
                    ),
                ),
                (
                    "application_group",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="subscriptions",
                        to="monitoring.applicationgroup",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="subscriptions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(application__isnull=False, application_group__isnull=True)
                            | models.Q(application__isnull=True, application_group__isnull=False)
                        ),
                        name="subscription_exactly_one_target",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(application__isnull=False),
                        fields=("user", "application"),
                        name="unique_application_subscription_per_user",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(application_group__isnull=False),
                        fields=("user", "application_group"),
                        name="unique_group_subscription_per_user",
                    ),
                ],
            },
        ),
    ]
