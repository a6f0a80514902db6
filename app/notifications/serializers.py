"""
Serializers for notification API.

- NotificationSerializer: Inbox entry
- UnreadCountSerializer: Badge count
- MarkAllReadResponseSerializer: Bulk mark-read result
"""

from rest_framework import serializers

from notifications.models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    booking = serializers.UUIDField(source="booking_id", read_only=True, allow_null=True)

    class Meta:
        model = Notification
        fields = ["id", "kind", "booking", "title", "body", "data", "is_read", "created_at"]
        read_only_fields = fields


class UnreadCountSerializer(serializers.Serializer):
    unread_count = serializers.IntegerField()


class MarkAllReadResponseSerializer(serializers.Serializer):
    marked_count = serializers.IntegerField()
