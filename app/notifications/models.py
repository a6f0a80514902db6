"""
Notification models.

- NotificationKind: What the notification is about
- Notification: One inbox entry for one user

Design Decisions:
    - Notifications are immutable once created apart from is_read; title
      and body are fully rendered strings kept as a historical record
    - booking uses SET_NULL so an inbox entry never blocks anything
    - recipient CASCADE: inbox entries go with the user

Usage:
    from notifications.models import Notification

    unread = Notification.objects.filter(recipient=user, is_read=False)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class NotificationKind(models.TextChoices):
    BOOKING_STATUS = "booking_status", "Booking Status"
    RELEASE_REMINDER = "release_reminder", "Release Reminder"
    SETTLEMENT = "settlement", "Settlement"


class Notification(BaseModel):
    """
    Individual notification record for a user.

    Fields:
        recipient: User receiving the notification (scopes all queries)
        booking: Booking the notification is about
        kind: Event category
        title: Fully rendered title string
        body: Fully rendered body string
        data: Event payload (statuses, amounts, hours remaining)
        is_read: Whether recipient has read this notification
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="User receiving this notification",
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
        help_text="Booking this notification is about",
    )
    kind = models.CharField(
        max_length=32,
        choices=NotificationKind.choices,
        db_index=True,
    )
    title = models.CharField(
        max_length=255,
        help_text="Fully rendered notification title",
    )
    body = models.TextField(
        blank=True,
        default="",
        help_text="Fully rendered notification body",
    )
    data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Event payload",
    )
    is_read = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether recipient has read this notification",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.kind} for {self.recipient_id}: {self.title}"
