"""Admin configuration for notifications."""

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ["id", "recipient", "kind", "title", "booking", "is_read", "created_at"]
    list_filter = ["kind", "is_read", "created_at"]
    search_fields = ["title", "recipient__email", "booking__id"]
    readonly_fields = [
        "recipient",
        "booking",
        "kind",
        "title",
        "body",
        "data",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False
