"""
Booking admin configuration.

Status fields are protected django-fsm fields and are shown read-only.
Transitions are made through the API or the service layer.
"""

from django.contrib import admin

from bookings.models import Booking, Dispute, Review


class DisputeInline(admin.StackedInline):
    model = Dispute
    extra = 0
    can_delete = False
    fk_name = "booking"
    readonly_fields = [
        "opened_by",
        "reason",
        "status",
        "outcome",
        "resolution_note",
        "resolved_by",
        "resolved_at",
        "created_at",
    ]

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Admin configuration for Booking."""

    list_display = [
        "id",
        "client",
        "creator",
        "usdc_amount",
        "chain",
        "status",
        "release_at",
        "created_at",
    ]
    list_filter = ["status", "chain", "created_at"]
    search_fields = ["id", "tx_hash", "client__email", "creator__email"]
    readonly_fields = [
        "id",
        "client",
        "creator",
        "service_id",
        "usdc_amount",
        "chain",
        "tx_hash",
        "status",
        "version",
        "work_started_at",
        "delivered_at",
        "accepted_at",
        "release_at",
        "released_at",
        "refunded_at",
        "canceled_at",
        "proof_links",
        "proof_files",
        "proof_note",
        "cancellation_requested_by",
        "cancellation_reason",
        "release_reminders_sent",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [DisputeInline]

    fieldsets = (
        (None, {"fields": ("id", "client", "creator", "service_id", "status", "version")}),
        ("Payment", {"fields": ("usdc_amount", "chain", "tx_hash")}),
        (
            "Delivery",
            {"fields": ("work_started_at", "proof_links", "proof_files", "proof_note")},
        ),
        (
            "Lifecycle",
            {
                "fields": (
                    "delivered_at",
                    "release_at",
                    "release_reminders_sent",
                    "accepted_at",
                    "released_at",
                    "refunded_at",
                    "canceled_at",
                    "cancellation_requested_by",
                    "cancellation_reason",
                ),
            },
        ),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for bookings (audit trail)."""
        return False


@admin.register(Dispute)
class DisputeAdmin(admin.ModelAdmin):
    list_display = ["id", "booking", "opened_by", "status", "outcome", "created_at"]
    list_filter = ["status", "outcome"]
    search_fields = ["id", "booking__id", "opened_by__email"]
    readonly_fields = [
        "id",
        "booking",
        "opened_by",
        "reason",
        "status",
        "outcome",
        "resolution_note",
        "resolved_by",
        "resolved_at",
        "created_at",
        "updated_at",
    ]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ["id", "booking", "reviewer", "reviewee", "rating", "created_at"]
    list_filter = ["rating"]
    search_fields = ["booking__id", "reviewer__email", "reviewee__email"]
    readonly_fields = ["id", "booking", "reviewer", "reviewee", "created_at", "updated_at"]
