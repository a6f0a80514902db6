"""
State enums for booking models.

Booking States:
    draft → pending → paid → delivered → accepted
                                       → disputed → released | refunded
                                       → released (auto-release after window)
    pending ⇄ payment_rejected (resubmission)
    draft/pending/payment_rejected/paid/delivered → canceled
    paid/delivered → refunded (admin force refund)
    delivered → released (admin force release)

work_started_at is a flag on a paid booking, not a separate status.

Dispute States:
    open → resolved (never reopens)
"""

from django.db import models


class BookingStatus(models.TextChoices):
    """
    States for the Booking lifecycle.

    Terminal states: ACCEPTED, RELEASED, REFUNDED, CANCELED
    """

    DRAFT = "draft", "Draft"
    PENDING = "pending", "Pending Verification"
    PAYMENT_REJECTED = "payment_rejected", "Payment Rejected"
    PAID = "paid", "Paid"
    DELIVERED = "delivered", "Delivered"
    ACCEPTED = "accepted", "Accepted"
    DISPUTED = "disputed", "Disputed"
    RELEASED = "released", "Released"
    REFUNDED = "refunded", "Refunded"
    CANCELED = "canceled", "Canceled"


class DisputeStatus(models.TextChoices):
    OPEN = "open", "Open"
    RESOLVED = "resolved", "Resolved"


class DisputeOutcome(models.TextChoices):
    """Admin decision for a dispute. A partial split is not offered."""

    REFUND = "refund", "Refund client"
    RELEASE = "release", "Release to creator"


TERMINAL_STATUSES = frozenset(
    {
        BookingStatus.ACCEPTED,
        BookingStatus.RELEASED,
        BookingStatus.REFUNDED,
        BookingStatus.CANCELED,
    }
)

# No funds are held yet, so either party may back out alone
PRE_FUNDING_STATUSES = frozenset(
    {
        BookingStatus.DRAFT,
        BookingStatus.PENDING,
        BookingStatus.PAYMENT_REJECTED,
    }
)

# Funds are in escrow; cancellation needs both parties or an admin
FUNDED_CANCELABLE_STATUSES = frozenset({BookingStatus.PAID, BookingStatus.DELIVERED})

REVIEWABLE_STATUSES = frozenset(
    {
        BookingStatus.ACCEPTED,
        BookingStatus.RELEASED,
        BookingStatus.REFUNDED,
    }
)


__all__ = [
    "BookingStatus",
    "DisputeOutcome",
    "DisputeStatus",
    "FUNDED_CANCELABLE_STATUSES",
    "PRE_FUNDING_STATUSES",
    "REVIEWABLE_STATUSES",
    "TERMINAL_STATUSES",
]
