"""
DRF serializers for the payments app.

This module provides serializers for:
- Payment display and submission
- Admin verification and rejection
- Settlement display and payout recording

Related files:
    - models/: Payment, Settlement
    - views.py: Payment and settlement API views

Usage:
    serializer = PaymentSubmitSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    result = PaymentService.submit_payment(payer=request.user, **serializer.validated_data)
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import Payment, Settlement
from payments.state_machines import PaymentNetwork, PaymentType


class PaymentSerializer(serializers.ModelSerializer):
    """
    Payment serializer for API responses.

    Fields:
        id: Payment ID
        booking: Booking paid for (null for tier payments)
        amount: Gross amount submitted
        network: Chain of the transfer
        tx_hash: Normalized transaction hash
        status: submitted, verified or rejected
        rejection_reason: Admin note when rejected
    """

    payer = serializers.UUIDField(source="payer_id", read_only=True)
    creator = serializers.UUIDField(source="creator_id", read_only=True, allow_null=True)
    booking = serializers.UUIDField(source="booking_id", read_only=True, allow_null=True)

    class Meta:
        model = Payment
        fields = [
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
            "verified_at",
            "rejected_at",
            "rejection_reason",
            "created_at",
        ]
        read_only_fields = fields


class PaymentSubmitSerializer(serializers.Serializer):
    """
    Serializer for payment submission.

    Fields:
        booking_id: Booking being paid for (service_booking)
        amount: Amount transferred, must equal the booking price
        network: ethereum, base or solana
        tx_hash: Transaction hash as shown by the wallet
        payment_type: service_booking (default) or creator_tier
        creator_id: Creator a tier payment is for
    """

    booking_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    amount = serializers.DecimalField(max_digits=18, decimal_places=6)
    network = serializers.ChoiceField(choices=PaymentNetwork.choices)
    tx_hash = serializers.CharField(max_length=128)
    payment_type = serializers.ChoiceField(
        choices=PaymentType.choices, default=PaymentType.SERVICE_BOOKING
    )
    creator_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    service_id = serializers.UUIDField(required=False, allow_null=True, default=None)


class PaymentRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=500)


class SettlementSerializer(serializers.ModelSerializer):
    """Settlement amounts and payout state."""

    booking = serializers.UUIDField(source="booking_id", read_only=True)
    payee_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Settlement
        fields = [
            "id",
            "booking",
            "outcome",
            "gross_amount",
            "creator_share",
            "platform_share",
            "client_refund",
            "payee_amount",
            "payout_status",
            "payout_tx_hash",
            "paid_out_at",
            "created_at",
        ]
        read_only_fields = fields


class MarkPaidOutSerializer(serializers.Serializer):
    payout_tx_hash = serializers.CharField(max_length=128)
