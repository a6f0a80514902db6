"""
Settlement record model.

The computed money movement for one booking once it reaches released or
refunded. The OneToOne link to the booking is the database-level guarantee
that a booking is settled at most once: a second insert fails with
IntegrityError no matter which code path raced to create it.

The external payout process reads pending settlements, moves the funds on
chain, and an admin records the payout hash with mark_paid_out().
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import PayoutStatus, SettlementOutcome


def _is_platform_admin(instance, user) -> bool:
    return bool(user and user.is_platform_admin)


class Settlement(ConcurrentTransitionMixin, UUIDPrimaryKeyMixin, BaseModel):
    """
    Amounts owed to each party for a finished booking.

    Invariant: creator_share + platform_share + client_refund == gross_amount
    """

    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="settlement",
    )
    outcome = models.CharField(
        max_length=10,
        choices=SettlementOutcome.choices,
    )
    gross_amount = models.DecimalField(max_digits=12, decimal_places=2)
    creator_share = models.DecimalField(max_digits=12, decimal_places=2)
    platform_share = models.DecimalField(max_digits=12, decimal_places=2)
    client_refund = models.DecimalField(max_digits=12, decimal_places=2)

    payout_status = FSMField(
        default=PayoutStatus.PENDING,
        choices=PayoutStatus.choices,
        protected=True,
        db_index=True,
    )
    payout_tx_hash = models.CharField(max_length=128, blank=True)
    paid_out_at = models.DateTimeField(null=True, blank=True)
    paid_out_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Settlement {self.outcome} for booking {self.booking_id}"

    @property
    def payee_amount(self):
        """Amount the payout process transfers (creator share or client refund)."""
        if self.outcome == SettlementOutcome.REFUND:
            return self.client_refund
        return self.creator_share

    @transition(
        field=payout_status,
        source=PayoutStatus.PENDING,
        target=PayoutStatus.PAID_OUT,
        permission=_is_platform_admin,
    )
    def mark_paid_out(self, admin, payout_tx_hash, at=None):
        """
        Record the on-chain payout.

        Transition: PENDING -> PAID_OUT
        """
        self.payout_tx_hash = payout_tx_hash
        self.paid_out_at = at or timezone.now()
        self.paid_out_by = admin
