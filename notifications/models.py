# File: notifications/models.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Notification(models.Model):
    """In-app notification shown in the user's bell menu."""

    class Type(models.TextChoices):
        INFO = "info", _("Information")
        SUCCESS = "success", _("Success")
        WARNING = "warning", _("Warning")
        REMINDER = "reminder", _("Reminder")
        ESCALATION = "escalation", _("Escalation")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name=_("Recipient"),
    )
    title = models.CharField(_("Title"), max_length=200)
    message = models.TextField(_("Message"), blank=True)
    type = models.CharField(_("Type"), max_length=16, choices=Type.choices, default=Type.INFO)

    # loose link to the object the notification is about (e.g. leave_request #42)
    related_type = models.CharField(_("Related type"), max_length=40, blank=True)
    related_id = models.PositiveBigIntegerField(_("Related ID"), null=True, blank=True)

    is_read = models.BooleanField(_("Read"), default=False)
    created_at = models.DateTimeField(_("Created at"), auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _("Notification")
        verbose_name_plural = _("Notifications")
        ordering = ("-created_at", "-id")
        indexes = [
            models.Index(fields=["user", "is_read"], name="ix_notification_unread"),
            models.Index(fields=["related_type", "related_id", "type", "created_at"], name="ix_notification_related"),
        ]

    def __str__(self) -> str:
        return f"[{self.type}] {self.title} → {self.user}"
