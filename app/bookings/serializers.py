"""
Serializers for the bookings API.

Serializer Hierarchy:
    BookingSerializer: Full booking with parties, proof and settlement
    BookingCreateSerializer: Create a draft booking
    ProofSubmitSerializer: Proof-of-work links, files and note
    CancelSerializer: Optional cancellation reason

    DisputeSerializer: Dispute with resolution fields
    DisputeOpenSerializer: Reason for opening a dispute
    DisputeResolveSerializer: Admin outcome and note

    ReviewSerializer: Review read representation
    ReviewCreateSerializer: Rating and comment

Design Decisions:
    - Read and write serializers are separate
    - Write serializers only shape input; business rules (lengths that
      depend on state, who may act) are enforced by the services
"""

from __future__ import annotations

from rest_framework import serializers

from authentication.serializers import UserSerializer
from bookings.models import Booking, Dispute, Review
from bookings.state_machines import DisputeOutcome
from payments.state_machines import PaymentNetwork


# =============================================================================
# Booking Serializers
# =============================================================================


class SettlementSummarySerializer(serializers.Serializer):
    """Settlement amounts embedded in a finished booking."""

    id = serializers.UUIDField(read_only=True)
    outcome = serializers.CharField(read_only=True)
    creator_share = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    platform_share = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    client_refund = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    payout_status = serializers.CharField(read_only=True)


class BookingSerializer(serializers.ModelSerializer):
    """
    Booking serializer for API responses.

    settlement is null until the booking reaches accepted, released or
    refunded.
    """

    client = UserSerializer(read_only=True)
    creator = UserSerializer(read_only=True)
    settlement = serializers.SerializerMethodField()
    cancellation_requested_by = serializers.UUIDField(
        source="cancellation_requested_by_id", read_only=True, allow_null=True
    )

    class Meta:
        model = Booking
        fields = [
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
            "settlement",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_settlement(self, obj) -> dict | None:
        settlement = getattr(obj, "settlement", None)
        if settlement is None:
            return None
        return SettlementSummarySerializer(settlement).data


class BookingCreateSerializer(serializers.Serializer):
    creator_id = serializers.UUIDField()
    service_id = serializers.UUIDField()
    usdc_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    chain = serializers.ChoiceField(
        choices=PaymentNetwork.choices, default=PaymentNetwork.BASE
    )


class ProofSubmitSerializer(serializers.Serializer):
    links = serializers.ListField(child=serializers.JSONField(), required=False, default=list)
    file_urls = serializers.ListField(child=serializers.JSONField(), required=False, default=list)
    note = serializers.CharField(required=False, allow_blank=True, default="")


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


# =============================================================================
# Dispute Serializers
# =============================================================================


class DisputeSerializer(serializers.ModelSerializer):
    booking = serializers.UUIDField(source="booking_id", read_only=True)
    opened_by = serializers.UUIDField(source="opened_by_id", read_only=True)
    resolved_by = serializers.UUIDField(
        source="resolved_by_id", read_only=True, allow_null=True
    )

    class Meta:
        model = Dispute
        fields = [
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
        ]
        read_only_fields = fields


class DisputeOpenSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True)


class DisputeResolveSerializer(serializers.Serializer):
    outcome = serializers.ChoiceField(choices=DisputeOutcome.choices)
    note = serializers.CharField(allow_blank=True)


# =============================================================================
# Review Serializers
# =============================================================================


class ReviewSerializer(serializers.ModelSerializer):
    reviewer = UserSerializer(read_only=True)
    reviewee = serializers.UUIDField(source="reviewee_id", read_only=True)

    class Meta:
        model = Review
        fields = ["id", "booking", "reviewer", "reviewee", "rating", "comment", "created_at"]
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    rating = serializers.IntegerField()
    comment = serializers.CharField(required=False, allow_blank=True, default="")
