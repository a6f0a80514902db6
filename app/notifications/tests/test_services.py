"""
Tests for NotificationService.
"""

from notifications.models import Notification, NotificationKind
from notifications.services import NotificationService
from notifications.tests.factories import NotificationFactory


class TestCreateNotification:
    def test_creates_notification(self, db, client_user):
        result = NotificationService.create_notification(
            client_user,
            kind=NotificationKind.BOOKING_STATUS,
            title="Work delivered",
            data={"to_status": "delivered"},
        )

        assert result.success
        assert result.data.recipient == client_user
        assert result.data.data == {"to_status": "delivered"}
        assert not result.data.is_read

    def test_long_title_is_truncated(self, db, client_user):
        result = NotificationService.create_notification(
            client_user, kind=NotificationKind.SETTLEMENT, title="x" * 300
        )

        assert len(result.data.title) == 255

    def test_notify_booking_parties(self, db, delivered_booking, client_user, creator_user):
        result = NotificationService.notify_booking_parties(
            delivered_booking, kind=NotificationKind.BOOKING_STATUS, title="Work delivered"
        )

        assert {n.recipient_id for n in result.data} == {client_user.pk, creator_user.pk}
        assert all(n.booking_id == delivered_booking.pk for n in result.data)


class TestMarkAsRead:
    def test_marks_own_notification(self, db, client_user):
        notification = NotificationFactory(recipient=client_user)

        result = NotificationService.mark_as_read(notification, client_user)

        assert result.success
        assert Notification.objects.get(pk=notification.pk).is_read

    def test_idempotent(self, db, client_user):
        notification = NotificationFactory(recipient=client_user, is_read=True)

        assert NotificationService.mark_as_read(notification, client_user).success

    def test_not_owner(self, db, client_user, creator_user):
        notification = NotificationFactory(recipient=creator_user)

        result = NotificationService.mark_as_read(notification, client_user)

        assert result.error_code == "NOT_OWNER"
        assert not Notification.objects.get(pk=notification.pk).is_read


class TestMarkAllAsRead:
    def test_marks_only_users_unread(self, db, client_user, creator_user):
        NotificationFactory.create_batch(3, recipient=client_user)
        NotificationFactory(recipient=client_user, is_read=True)
        NotificationFactory(recipient=creator_user)

        result = NotificationService.mark_all_as_read(client_user)

        assert result.data == 3
        assert Notification.objects.filter(recipient=creator_user, is_read=False).count() == 1
