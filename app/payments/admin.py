"""
Payment admin configuration.

Registers payments and settlements with the Django admin. Records are
read-only here: verification, rejection and payouts go through the
service layer (API or the admin actions below) so state changes keep
their guards and events.
"""

from django.contrib import admin, messages

from payments.models import Payment, Settlement
from payments.services import PaymentService


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payment.

    The verify/reject actions call PaymentService so the booking moves
    with the payment.
    """

    list_display = [
        "id",
        "payer",
        "booking",
        "amount",
        "network",
        "payment_type",
        "status",
        "created_at",
    ]
    list_filter = ["status", "network", "payment_type", "created_at"]
    search_fields = ["id", "tx_hash", "payer__email", "booking__id"]
    readonly_fields = [
        "id",
        "payer",
        "creator",
        "booking",
        "service_id",
        "amount",
        "currency",
        "network",
        "payment_type",
        "tx_hash",
        "status",
        "version",
        "verified_at",
        "verified_by",
        "rejected_at",
        "rejected_by",
        "rejection_reason",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["verify_payments", "reject_payments"]

    @admin.action(description="Verify selected payments")
    def verify_payments(self, request, queryset):
        self._apply(request, queryset, PaymentService.verify_payment)

    @admin.action(description="Reject selected payments")
    def reject_payments(self, request, queryset):
        self._apply(request, queryset, PaymentService.reject_payment)

    def _apply(self, request, queryset, operation):
        done = 0
        for payment_id in queryset.values_list("pk", flat=True):
            result = operation(payment_id, request.user)
            if result.success:
                done += 1
            else:
                self.message_user(
                    request,
                    f"Payment {payment_id}: {result.error}",
                    level=messages.WARNING,
                )
        self.message_user(request, f"{done} payment(s) updated.")

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for payments (audit trail)."""
        return False


@admin.register(Settlement)
class SettlementAdmin(admin.ModelAdmin):
    """Admin configuration for Settlement."""

    list_display = [
        "id",
        "booking",
        "outcome",
        "gross_amount",
        "creator_share",
        "platform_share",
        "client_refund",
        "payout_status",
        "created_at",
    ]
    list_filter = ["outcome", "payout_status", "created_at"]
    search_fields = ["id", "booking__id", "payout_tx_hash"]
    readonly_fields = [
        "id",
        "booking",
        "outcome",
        "gross_amount",
        "creator_share",
        "platform_share",
        "client_refund",
        "payout_status",
        "payout_tx_hash",
        "paid_out_at",
        "paid_out_by",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for settlements (audit trail)."""
        return False
