"""
Payment record model.

One row per crypto payment claim. The client (or a creator paying a tier
fee) submits the transaction hash; an admin checks the chain and verifies
or rejects it. A verified service_booking payment is what moves its
booking to paid.

Usage:
    from payments.models import Payment

    payment = Payment.objects.create(
        payer=client,
        creator=booking.creator,
        booking=booking,
        service_id=booking.service_id,
        amount=booking.usdc_amount,
        network=PaymentNetwork.BASE,
        tx_hash=tx_hash,
    )

    payment.verify(admin)  # submitted -> verified
    payment.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel
from payments.settlement import SettlementSplit, settle
from payments.state_machines import (
    PaymentNetwork,
    PaymentStatus,
    PaymentType,
)


def _is_platform_admin(instance, user) -> bool:
    return bool(user and user.is_platform_admin)


class Payment(ConcurrentTransitionMixin, VersionedMixin, UUIDPrimaryKeyMixin, BaseModel):
    """
    Crypto payment claim awaiting admin verification.

    State Flow:
        SUBMITTED -> VERIFIED
        SUBMITTED -> REJECTED

    Fields:
        payer: User who sent the funds
        creator: Creator the payment is for (absent for tier fees)
        booking: Booking paid for (service_booking only)
        service_id: Service being booked (denormalized from booking)
        amount: Gross amount as submitted
        currency: Token symbol, USDC
        network: Chain the transfer happened on
        tx_hash: Normalized transaction hash, unique per network
        status: Verification state (FSM, protected)
    """

    payer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments_made",
        help_text="User who sent the funds",
    )
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments_received",
        help_text="Creator the payment is for",
    )
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
        help_text="Booking this payment is for",
    )
    service_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Service being paid for",
    )

    amount = models.DecimalField(
        max_digits=18,
        decimal_places=6,
        help_text="Gross amount as submitted by the payer",
    )
    currency = models.CharField(
        max_length=10,
        default="USDC",
        help_text="Token symbol",
    )
    network = models.CharField(
        max_length=16,
        choices=PaymentNetwork.choices,
        help_text="Chain the transfer happened on",
    )
    payment_type = models.CharField(
        max_length=20,
        choices=PaymentType.choices,
        default=PaymentType.SERVICE_BOOKING,
        db_index=True,
    )
    tx_hash = models.CharField(
        max_length=128,
        help_text="Transaction hash, normalized per network",
    )

    status = FSMField(
        default=PaymentStatus.SUBMITTED,
        choices=PaymentStatus.choices,
        protected=True,
        db_index=True,
    )

    verified_at = models.DateTimeField(null=True, blank=True)
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    rejection_reason = models.CharField(max_length=500, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["network", "tx_hash"],
                name="unique_tx_hash_per_network",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_amount_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["booking", "status"], name="payment_booking_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Payment {self.id} ({self.network}:{self.tx_hash[:12]}, {self.status})"

    @property
    def settlement_split(self) -> SettlementSplit:
        """Platform/creator split of this payment's amount."""
        return settle(self.amount, self.payment_type)

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PaymentStatus.SUBMITTED,
        target=PaymentStatus.VERIFIED,
        permission=_is_platform_admin,
    )
    def verify(self, admin, at=None):
        """
        Record that the transfer was found on chain for the expected amount.

        Transition: SUBMITTED -> VERIFIED
        """
        self.verified_at = at or timezone.now()
        self.verified_by = admin

    @transition(
        field=status,
        source=PaymentStatus.SUBMITTED,
        target=PaymentStatus.REJECTED,
        permission=_is_platform_admin,
    )
    def reject(self, admin, reason="", at=None):
        """
        Record that the transfer could not be confirmed.

        Transition: SUBMITTED -> REJECTED
        """
        self.rejected_at = at or timezone.now()
        self.rejected_by = admin
        self.rejection_reason = reason
