"""
Monitored applications and the groups that organise them.
"""

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class ApplicationGroup(models.Model):
    """
    A named set of applications owned by one user.

    Subscribing to a group subscribes to incidents of every application in it.
    Deleting a group detaches its applications instead of deleting them.
    """

    name = models.CharField(
        max_length=255,
        help_text="Group name (unique per owner).",
    )
    description = models.TextField(
        blank=True,
        default="",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="application_groups",
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
    )
    updated_at = models.DateTimeField(
        auto_now=True,
    )

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "name"],
                name="unique_application_group_name_per_user",
            ),
        ]

    def __str__(self):
        return self.name


class Application(models.Model):
    """
    An external HTTP service that is probed periodically.

    The probe targets ``url_to_watch`` when set, otherwise ``url``.
    """

    name = models.CharField(
        max_length=255,
    )
    url = models.URLField(
        max_length=2048,
        help_text="Public URL of the application.",
    )
    url_to_watch = models.URLField(
        max_length=2048,
        blank=True,
        default="",
        help_text="Health endpoint to probe instead of the public URL.",
    )
    expected_http_code = models.PositiveSmallIntegerField(
        default=200,
        validators=[MinValueValidator(100), MaxValueValidator(599)],
        help_text="Status code a healthy probe must return.",
    )
    monitoring_interval = models.PositiveIntegerField(
        default=5,
        validators=[MinValueValidator(1)],
        help_text="Minutes between two checks.",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="applications",
    )
    application_group = models.ForeignKey(
        ApplicationGroup,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="applications",
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
    )
    updated_at = models.DateTimeField(
        auto_now=True,
    )

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["user", "created_at"], name="application_user_created_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.monitor_url})"

    @property
    def monitor_url(self) -> str:
        """Effective probe target."""
        return self.url_to_watch or self.url

    def clean(self):
        super().clean()
        if not self.monitor_url:
            raise ValidationError({"url": "An application needs a URL to monitor."})
        if (
            self.application_group_id
            and self.user_id
            and self.application_group.user_id != self.user_id
        ):
            raise ValidationError(
                {"application_group": "Applications can only join their owner's groups."}
            )
