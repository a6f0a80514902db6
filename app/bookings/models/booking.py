"""
Booking model: one paid service transaction between a client and a creator.

The status column is a django-fsm FSMField with protected=True, so it can
only change through the @transition methods below. ConcurrentTransitionMixin
turns every save into a compare-and-swap on the status the instance was
loaded with:

    UPDATE bookings_booking SET ... WHERE id = %s AND status = <loaded status>

If another actor moved the booking first, zero rows match and django-fsm
raises ConcurrentTransition. VersionedMixin adds ``AND version = <loaded>``
so writes that keep the status are guarded the same way.
bookings.state_machine translates both into ConcurrentModificationError.

The transition methods only mutate fields; guards that need the database
(verified payment, open dispute) and side effects (disputes, settlements,
events) live in bookings.state_machine.BookingStateMachine.

Usage:
    booking = Booking.objects.create(
        client=client,
        creator=creator,
        service_id=service_id,
        usdc_amount=Decimal("100.00"),
    )
"""

from __future__ import annotations

from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from bookings.state_machines import (
    FUNDED_CANCELABLE_STATUSES,
    PRE_FUNDING_STATUSES,
    TERMINAL_STATUSES,
    BookingStatus,
)
from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel
from payments.state_machines import PaymentNetwork


def release_window() -> timedelta:
    return timedelta(hours=settings.ESCROW_RELEASE_WINDOW_HOURS)


# =============================================================================
# Transition permissions (django-fsm permission callables)
# =============================================================================


def _is_client(instance, user) -> bool:
    return user is not None and user.pk == instance.client_id


def _is_creator(instance, user) -> bool:
    return user is not None and user.pk == instance.creator_id


def _is_party(instance, user) -> bool:
    return _is_client(instance, user) or _is_creator(instance, user)


def _is_platform_admin(instance, user) -> bool:
    return user is not None and user.is_platform_admin


def _is_party_or_admin(instance, user) -> bool:
    return _is_party(instance, user) or _is_platform_admin(instance, user)


class Booking(ConcurrentTransitionMixin, VersionedMixin, UUIDPrimaryKeyMixin, BaseModel):
    """
    Central escrow entity.

    State Flow:
        DRAFT -> PENDING -> PAID -> DELIVERED -> ACCEPTED
        DELIVERED -> DISPUTED -> RELEASED | REFUNDED
        DELIVERED -> RELEASED (auto-release once release_at passes)

    Invariants:
        - release_at == delivered_at + ESCROW_RELEASE_WINDOW_HOURS, written
          only by deliver() and kept on every later
          transition except dispute resolution, which clears it
        - at most one terminal status; terminal states have no outgoing
          transitions
        - rows are never deleted
    """

    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="client_bookings",
        help_text="User who booked and pays",
    )
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="creator_bookings",
        help_text="User who delivers the service",
    )
    service_id = models.UUIDField(
        db_index=True,
        help_text="Service being booked",
    )

    usdc_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Gross price in USDC, fixed at creation",
    )
    chain = models.CharField(
        max_length=16,
        choices=PaymentNetwork.choices,
        default=PaymentNetwork.BASE,
        help_text="Network the client pays on",
    )
    tx_hash = models.CharField(
        max_length=128,
        blank=True,
        help_text="Hash of the latest submitted payment",
    )

    status = FSMField(
        default=BookingStatus.DRAFT,
        choices=BookingStatus.choices,
        protected=True,
        db_index=True,
    )

    # Lifecycle timestamps
    work_started_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    release_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Auto-release deadline (delivered_at + release window)",
    )
    released_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)

    # Proof of work
    proof_links = models.JSONField(
        default=list,
        blank=True,
        help_text='List of {"url", "label"} links',
    )
    proof_files = models.JSONField(
        default=list,
        blank=True,
        help_text='List of {"url", "label"} uploaded file URLs',
    )
    proof_note = models.TextField(blank=True)

    # Mutual cancellation once funds are held
    cancellation_requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    cancellation_reason = models.CharField(max_length=500, blank=True)

    release_reminders_sent = models.JSONField(
        default=list,
        blank=True,
        help_text="Hours-before-release marks already notified",
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(usdc_amount__gt=0),
                name="booking_amount_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "release_at"], name="booking_status_release_idx"),
            models.Index(fields=["client", "status"], name="booking_client_status_idx"),
            models.Index(fields=["creator", "status"], name="booking_creator_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.id} ({self.status})"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def work_started(self) -> bool:
        return self.work_started_at is not None

    @property
    def has_proof(self) -> bool:
        return bool(self.proof_links or self.proof_files or self.proof_note.strip())

    def is_party(self, user) -> bool:
        return _is_party(self, user)

    def counterparty_of(self, user):
        """The other party of the booking, or None if user is not a party."""
        if _is_client(self, user):
            return self.creator
        if _is_creator(self, user):
            return self.client
        return None

    def time_until_release(self, now=None) -> timedelta | None:
        if self.release_at is None:
            return None
        return self.release_at - (now or timezone.now())

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[BookingStatus.DRAFT, BookingStatus.PAYMENT_REJECTED],
        target=BookingStatus.PENDING,
        permission=_is_client,
    )
    def submit_payment(self, tx_hash, chain):
        """
        Client submitted an on-chain payment for verification.

        Transition: DRAFT | PAYMENT_REJECTED -> PENDING
        """
        self.tx_hash = tx_hash
        self.chain = chain

    @transition(
        field=status,
        source=BookingStatus.PENDING,
        target=BookingStatus.PAYMENT_REJECTED,
        permission=_is_platform_admin,
    )
    def reject_payment(self):
        """
        Admin could not confirm the payment; the client may resubmit.

        Transition: PENDING -> PAYMENT_REJECTED
        """

    @transition(
        field=status,
        source=[BookingStatus.PENDING, BookingStatus.PAYMENT_REJECTED],
        target=BookingStatus.PAID,
        permission=_is_platform_admin,
    )
    def mark_paid(self):
        """
        Funds confirmed and held in escrow.

        Transition: PENDING | PAYMENT_REJECTED -> PAID
        """

    @transition(
        field=status,
        source=BookingStatus.PAID,
        target=BookingStatus.PAID,
        permission=_is_creator,
    )
    def start_work(self, at):
        """
        Creator began the work. Sets work_started_at once; repeat calls keep
        the first timestamp.

        Transition: PAID -> PAID
        """
        if self.work_started_at is None:
            self.work_started_at = at

    @transition(
        field=status,
        source=BookingStatus.PAID,
        target=BookingStatus.DELIVERED,
        permission=_is_creator,
    )
    def deliver(self, links, files, note, at):
        """
        Creator submitted proof of work; the protection window starts.

        Transition: PAID -> DELIVERED
        """
        self.proof_links = links
        self.proof_files = files
        self.proof_note = note
        self.delivered_at = at
        self.release_at = at + release_window()
        self.release_reminders_sent = []

    @transition(
        field=status,
        source=BookingStatus.DELIVERED,
        target=BookingStatus.ACCEPTED,
        permission=_is_client,
    )
    def accept(self, at):
        """
        Client accepted the delivery; the creator share is released.

        Transition: DELIVERED -> ACCEPTED
        """
        self.accepted_at = at

    @transition(
        field=status,
        source=BookingStatus.DELIVERED,
        target=BookingStatus.DISPUTED,
        permission=_is_party,
    )
    def open_dispute(self):
        """
        Client or creator disputed the delivery. Auto-release stops because
        the sweep only selects delivered bookings.

        Transition: DELIVERED -> DISPUTED
        """

    @transition(
        field=status,
        source=BookingStatus.DELIVERED,
        target=BookingStatus.RELEASED,
    )
    def auto_release(self, at):
        """
        Protection window elapsed with no client action and no dispute.

        Transition: DELIVERED -> RELEASED
        """
        self.released_at = at

    @transition(
        field=status,
        source=BookingStatus.DISPUTED,
        target=BookingStatus.RELEASED,
        permission=_is_platform_admin,
    )
    def resolve_release(self, at):
        """
        Admin decided the dispute in the creator's favour.

        Transition: DISPUTED -> RELEASED
        """
        self.released_at = at
        self.release_at = None

    @transition(
        field=status,
        source=BookingStatus.DISPUTED,
        target=BookingStatus.REFUNDED,
        permission=_is_platform_admin,
    )
    def resolve_refund(self, at):
        """
        Admin decided the dispute in the client's favour.

        Transition: DISPUTED -> REFUNDED
        """
        self.refunded_at = at
        self.release_at = None

    @transition(
        field=status,
        source=BookingStatus.DELIVERED,
        target=BookingStatus.RELEASED,
        permission=_is_platform_admin,
    )
    def force_release(self, at):
        """
        Admin released escrow before the window elapsed.

        Transition: DELIVERED -> RELEASED
        """
        self.released_at = at

    @transition(
        field=status,
        source=[BookingStatus.PAID, BookingStatus.DELIVERED],
        target=BookingStatus.REFUNDED,
        permission=_is_platform_admin,
    )
    def force_refund(self, at):
        """
        Admin returned the funds to the client outside a dispute.

        Transition: PAID | DELIVERED -> REFUNDED
        """
        self.refunded_at = at

    @transition(
        field=status,
        source=list(PRE_FUNDING_STATUSES | FUNDED_CANCELABLE_STATUSES),
        target=BookingStatus.CANCELED,
        permission=_is_party_or_admin,
    )
    def cancel(self, reason, at):
        """
        Booking called off. Disputed bookings are excluded; they end through
        dispute resolution.

        Transition: DRAFT | PENDING | PAYMENT_REJECTED | PAID | DELIVERED -> CANCELED
        """
        self.canceled_at = at
        if reason:
            self.cancellation_reason = reason
