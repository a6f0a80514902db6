"""
State and choice enums for payment models.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Payment States:
    submitted → verified   (admin confirmed the on-chain transfer)
    submitted → rejected   (admin could not confirm it)

Settlement Payout States:
    pending → paid_out     (admin recorded the payout transfer)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    States for the Payment record lifecycle.

    Terminal states: VERIFIED, REJECTED. Verification is append-only;
    a rejected payment is replaced by a new submission, never revived.
    """

    SUBMITTED = "submitted", "Submitted"
    VERIFIED = "verified", "Verified"
    REJECTED = "rejected", "Rejected"


class PaymentType(models.TextChoices):
    """
    What a payment pays for.

    SERVICE_BOOKING: client pays for a booking; held in escrow
    CREATOR_TIER: creator pays a subscription fee; platform keeps all of it
    """

    SERVICE_BOOKING = "service_booking", "Service Booking"
    CREATOR_TIER = "creator_tier", "Creator Tier"


class PaymentNetwork(models.TextChoices):
    """Supported settlement chains. ETHEREUM and BASE share the EVM hash format."""

    ETHEREUM = "ethereum", "Ethereum"
    BASE = "base", "Base"
    SOLANA = "solana", "Solana"


class SettlementOutcome(models.TextChoices):
    RELEASE = "release", "Release to creator"
    REFUND = "refund", "Refund to client"


class PayoutStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID_OUT = "paid_out", "Paid Out"


EVM_NETWORKS = frozenset({PaymentNetwork.ETHEREUM, PaymentNetwork.BASE})


__all__ = [
    "EVM_NETWORKS",
    "PaymentNetwork",
    "PaymentStatus",
    "PaymentType",
    "PayoutStatus",
    "SettlementOutcome",
]
