"""
Notification service layer.

Services:
    NotificationService: Notification creation and read status management

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()

Usage:
    from notifications.services import NotificationService

    NotificationService.notify_booking_parties(
        booking,
        kind=NotificationKind.BOOKING_STATUS,
        title="Booking delivered",
    )

    result = NotificationService.mark_as_read(notification, user)
    result = NotificationService.mark_all_as_read(user)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.services import BaseService, ServiceResult
from notifications.models import Notification

if TYPE_CHECKING:
    from authentication.models import User
    from bookings.models import Booking

logger = logging.getLogger(__name__)


class NotificationService(BaseService):
    """Creates inbox entries and tracks their read state."""

    @classmethod
    def create_notification(
        cls,
        recipient: User,
        kind: str,
        title: str,
        body: str = "",
        booking: Booking | None = None,
        data: dict | None = None,
    ) -> ServiceResult[Notification]:
        notification = Notification.objects.create(
            recipient=recipient,
            booking=booking,
            kind=kind,
            title=title[:255],
            body=body,
            data=data or {},
        )
        logger.debug(
            "Notification created",
            extra={
                "notification_id": notification.pk,
                "recipient_id": str(recipient.pk),
                "kind": kind,
            },
        )
        return ServiceResult.success(notification)

    @classmethod
    def notify_booking_parties(
        cls,
        booking: Booking,
        kind: str,
        title: str,
        body: str = "",
        data: dict | None = None,
    ) -> ServiceResult[list[Notification]]:
        """Create the same notification for the client and the creator."""
        notifications = [
            cls.create_notification(recipient, kind, title, body, booking, data).data
            for recipient in (booking.client, booking.creator)
        ]
        return ServiceResult.success(notifications)

    @classmethod
    def mark_as_read(cls, notification: Notification, user: User) -> ServiceResult[Notification]:
        """
        Mark a single notification as read.

        Idempotent: marking an already-read notification succeeds.

        Error codes:
            NOT_OWNER: User doesn't own the notification
        """
        if notification.recipient_id != user.pk:
            cls.get_logger().warning(
                "User attempted to mark a notification they do not own",
                extra={"notification_id": notification.pk, "user_id": str(user.pk)},
            )
            return ServiceResult.failure(
                "Cannot mark notification you don't own",
                error_code="NOT_OWNER",
            )

        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read", "updated_at"])

        return ServiceResult.success(notification)

    @classmethod
    def mark_all_as_read(cls, user: User) -> ServiceResult[int]:
        """Mark all user's unread notifications as read in one query."""
        count = Notification.objects.filter(recipient=user, is_read=False).update(is_read=True)
        cls.get_logger().info(
            "Marked notifications as read",
            extra={"user_id": str(user.pk), "marked_count": count},
        )
        return ServiceResult.success(count)
