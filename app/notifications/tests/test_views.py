"""
API tests for the notification inbox.

Test classes:
    TestNotificationList: list, scoping and filters
    TestUnreadCount: badge count
    TestMarkRead: single and bulk mark-as-read
"""

import pytest
from django.urls import reverse
from rest_framework import status

from notifications.models import Notification
from notifications.tests.factories import NotificationFactory


@pytest.mark.django_db
class TestNotificationList:
    def test_requires_authentication(self, api_client):
        response = api_client.get(reverse("notifications:notification-list"))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_returns_only_own_notifications(self, auth_client, client_user, creator_user):
        own = NotificationFactory(recipient=client_user)
        NotificationFactory(recipient=creator_user)

        response = auth_client(client_user).get(reverse("notifications:notification-list"))

        assert response.status_code == status.HTTP_200_OK
        assert [item["id"] for item in response.data["results"]] == [own.pk]

    def test_filter_by_read_status(self, auth_client, client_user):
        NotificationFactory(recipient=client_user, is_read=True)
        unread = NotificationFactory(recipient=client_user)

        response = auth_client(client_user).get(
            reverse("notifications:notification-list"), {"is_read": "false"}
        )

        assert [item["id"] for item in response.data["results"]] == [unread.pk]

    def test_filter_by_booking(self, auth_client, client_user, delivered_booking):
        about_booking = NotificationFactory(recipient=client_user, booking=delivered_booking)
        NotificationFactory(recipient=client_user)

        response = auth_client(client_user).get(
            reverse("notifications:notification-list"), {"booking": str(delivered_booking.pk)}
        )

        assert [item["id"] for item in response.data["results"]] == [about_booking.pk]
        assert response.data["results"][0]["booking"] == str(delivered_booking.pk)


@pytest.mark.django_db
class TestUnreadCount:
    def test_counts_unread(self, auth_client, client_user):
        NotificationFactory.create_batch(2, recipient=client_user)
        NotificationFactory(recipient=client_user, is_read=True)

        response = auth_client(client_user).get(reverse("notifications:notification-unread-count"))

        assert response.data == {"unread_count": 2}


@pytest.mark.django_db
class TestMarkRead:
    def test_mark_single(self, auth_client, client_user):
        notification = NotificationFactory(recipient=client_user)

        response = auth_client(client_user).post(
            reverse("notifications:notification-read", args=[notification.pk])
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["is_read"] is True

    def test_other_users_notification_is_not_found(self, auth_client, client_user, creator_user):
        notification = NotificationFactory(recipient=creator_user)

        response = auth_client(client_user).post(
            reverse("notifications:notification-read", args=[notification.pk])
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert not Notification.objects.get(pk=notification.pk).is_read

    def test_mark_all(self, auth_client, client_user):
        NotificationFactory.create_batch(3, recipient=client_user)

        response = auth_client(client_user).post(reverse("notifications:notification-read-all"))

        assert response.data == {"marked_count": 3}
        assert not Notification.objects.filter(recipient=client_user, is_read=False).exists()
