"""
Tests for Booking and Dispute model transitions (django-fsm).

These exercise the raw @transition methods: legal sources and targets,
fields each transition writes, protected status, the compare-and-swap
save and the check constraints. Guards that need other rows live in BookingStateMachine and are
covered in test_state_machine.py.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import IntegrityError, models, transaction
from django.utils import timezone
from django_fsm import ConcurrentTransition, TransitionNotAllowed, has_transition_perm

from bookings.models import Booking, Review
from bookings.state_machines import BookingStatus, DisputeOutcome, DisputeStatus
from bookings.tests.factories import BookingFactory, ReviewFactory, reload_booking


# =============================================================================
# Booking Transition Tests
# =============================================================================


class TestBookingTransitions:
    """Tests for Booking state machine transitions."""

    # -------------------------------------------------------------------------
    # Valid Transitions
    # -------------------------------------------------------------------------

    def test_draft_to_pending(self, db, draft_booking):
        """Should record the hash and network on payment submission."""
        tx_hash = "0x" + "a" * 64
        draft_booking.submit_payment(tx_hash, "ethereum")
        draft_booking.save()

        booking = reload_booking(draft_booking)
        assert booking.status == BookingStatus.PENDING
        assert booking.tx_hash == tx_hash
        assert booking.chain == "ethereum"

    def test_rejected_payment_can_be_resubmitted(self, db, pending_booking):
        """Should allow pending -> payment_rejected -> pending."""
        pending_booking.reject_payment()
        pending_booking.save()
        assert pending_booking.status == BookingStatus.PAYMENT_REJECTED

        pending_booking.submit_payment("0x" + "b" * 64, "base")
        pending_booking.save()
        assert pending_booking.status == BookingStatus.PENDING

    def test_pending_to_paid(self, db, pending_booking):
        pending_booking.mark_paid()
        pending_booking.save()

        assert reload_booking(pending_booking).status == BookingStatus.PAID

    def test_start_work_keeps_status_and_first_timestamp(self, db, paid_booking):
        """Should set work_started_at once without leaving paid."""
        first = timezone.now()
        paid_booking.start_work(first)
        paid_booking.save()
        paid_booking.start_work(first + timedelta(hours=2))
        paid_booking.save()

        booking = reload_booking(paid_booking)
        assert booking.status == BookingStatus.PAID
        assert booking.work_started_at == first

    def test_deliver_sets_release_deadline(self, db, started_booking, settings):
        """Should set release_at to delivered_at plus the release window."""
        settings.ESCROW_RELEASE_WINDOW_HOURS = 72
        at = timezone.now()
        started_booking.deliver(
            [{"url": "https://example.com/x", "label": ""}], [], "done", at
        )
        started_booking.save()

        booking = reload_booking(started_booking)
        assert booking.status == BookingStatus.DELIVERED
        assert booking.delivered_at == at
        assert booking.release_at == at + timedelta(hours=72)
        assert booking.proof_note == "done"
        assert booking.release_reminders_sent == []

    def test_delivered_to_accepted(self, db, delivered_booking):
        at = timezone.now()
        delivered_booking.accept(at)
        delivered_booking.save()

        assert delivered_booking.status == BookingStatus.ACCEPTED
        assert delivered_booking.accepted_at == at

    def test_dispute_keeps_release_at_until_resolved(self, db, delivered_booking):
        """Should keep the deadline while disputed and clear it on refund."""
        release_at = delivered_booking.release_at
        delivered_booking.open_dispute()
        delivered_booking.save()
        assert delivered_booking.status == BookingStatus.DISPUTED
        assert delivered_booking.release_at == release_at

        delivered_booking.resolve_refund(timezone.now())
        delivered_booking.save()
        assert delivered_booking.status == BookingStatus.REFUNDED
        assert delivered_booking.release_at is None
        assert delivered_booking.refunded_at is not None

    def test_force_refund_from_paid(self, db, paid_booking):
        paid_booking.force_refund(timezone.now())
        paid_booking.save()

        assert paid_booking.status == BookingStatus.REFUNDED

    @pytest.mark.parametrize(
        "trait",
        ["pending", "paid", "delivered"],
    )
    def test_cancel_from_cancelable_states(self, db, trait):
        booking = BookingFactory(**{trait: True})
        booking.cancel("changed plans", timezone.now())
        booking.save()

        booking = reload_booking(booking)
        assert booking.status == BookingStatus.CANCELED
        assert booking.cancellation_reason == "changed plans"
        if trait == "delivered":
            assert booking.release_at == booking.delivered_at + timedelta(hours=72)
        else:
            assert booking.release_at is None

    # -------------------------------------------------------------------------
    # Invalid Transitions
    # -------------------------------------------------------------------------

    def test_cannot_deliver_from_draft(self, db, draft_booking):
        with pytest.raises(TransitionNotAllowed):
            draft_booking.deliver([], [], "note", timezone.now())

    def test_cannot_accept_paid_booking(self, db, paid_booking):
        with pytest.raises(TransitionNotAllowed):
            paid_booking.accept(timezone.now())

    def test_cannot_cancel_disputed_booking(self, db, disputed_booking):
        """Disputed bookings end through resolution only."""
        with pytest.raises(TransitionNotAllowed):
            disputed_booking.cancel("", timezone.now())

    def test_force_release_requires_delivered(self, db, paid_booking):
        with pytest.raises(TransitionNotAllowed):
            paid_booking.force_release(timezone.now())

    @pytest.mark.parametrize(
        "terminal_status",
        [
            BookingStatus.ACCEPTED,
            BookingStatus.RELEASED,
            BookingStatus.REFUNDED,
            BookingStatus.CANCELED,
        ],
    )
    def test_terminal_states_have_no_exits(self, db, terminal_status):
        """Should refuse every transition from a terminal status."""
        booking = BookingFactory(status=terminal_status)
        now = timezone.now()

        attempts = [
            lambda: booking.submit_payment("0x" + "c" * 64, "base"),
            lambda: booking.mark_paid(),
            lambda: booking.accept(now),
            lambda: booking.open_dispute(),
            lambda: booking.auto_release(now),
            lambda: booking.force_refund(now),
            lambda: booking.cancel("", now),
        ]
        for attempt in attempts:
            with pytest.raises(TransitionNotAllowed):
                attempt()
        assert booking.is_terminal

    # -------------------------------------------------------------------------
    # Protection and compare-and-swap
    # -------------------------------------------------------------------------

    def test_status_cannot_be_assigned_directly(self, db, paid_booking):
        with pytest.raises(AttributeError):
            paid_booking.status = BookingStatus.RELEASED

    def test_stale_snapshot_save_raises(self, db, delivered_booking):
        """Should refuse to write over a status another instance already moved."""
        first = reload_booking(delivered_booking)
        second = reload_booking(delivered_booking)

        first.accept(timezone.now())
        first.save()

        second.open_dispute()
        with pytest.raises(ConcurrentTransition), transaction.atomic():
            second.save()

        assert reload_booking(delivered_booking).status == BookingStatus.ACCEPTED

    def test_stale_snapshot_same_status_save_raises(self, db, paid_booking):
        """Should refuse a write that keeps the status but follows another save."""
        first = reload_booking(paid_booking)
        second = reload_booking(paid_booking)
        started_at = timezone.now()

        first.start_work(started_at)
        first.save()

        second.cancellation_reason = "changed plans"
        with pytest.raises(ConcurrentTransition), transaction.atomic():
            second.save()

        booking = reload_booking(paid_booking)
        assert booking.work_started_at == started_at
        assert booking.cancellation_reason == ""
        assert booking.version == 2

    def test_saved_instance_can_be_saved_again(self, db, paid_booking):
        paid_booking.start_work(timezone.now())
        paid_booking.save()
        paid_booking.cancellation_reason = "second write"
        paid_booking.save()

        assert reload_booking(paid_booking).version == 3

    def test_version_increments_on_save(self, db, paid_booking):
        version = paid_booking.version
        paid_booking.start_work(timezone.now())
        paid_booking.save()

        assert paid_booking.version == version + 1
        assert Booking.objects.get(pk=paid_booking.pk).version == version + 1

    # -------------------------------------------------------------------------
    # Permissions
    # -------------------------------------------------------------------------

    def test_only_client_may_accept(self, db, delivered_booking, client_user, creator_user):
        assert has_transition_perm(delivered_booking.accept, client_user)
        assert not has_transition_perm(delivered_booking.accept, creator_user)

    def test_only_creator_may_deliver(self, db, started_booking, client_user, creator_user):
        assert has_transition_perm(started_booking.deliver, creator_user)
        assert not has_transition_perm(started_booking.deliver, client_user)

    def test_either_party_may_dispute(
        self, db, delivered_booking, client_user, creator_user, admin_user
    ):
        assert has_transition_perm(delivered_booking.open_dispute, client_user)
        assert has_transition_perm(delivered_booking.open_dispute, creator_user)
        assert not has_transition_perm(delivered_booking.open_dispute, admin_user)

    def test_auto_release_has_no_actor(self, db, delivered_booking):
        """The sweep calls auto_release with no user."""
        assert has_transition_perm(delivered_booking.auto_release, None)


# =============================================================================
# Dispute Transition Tests
# =============================================================================


class TestDisputeTransitions:
    def test_open_to_resolved(self, db, open_dispute, admin_user):
        at = timezone.now()
        open_dispute.resolve(admin_user, DisputeOutcome.REFUND, "Files missing", at)
        open_dispute.save()

        assert open_dispute.status == DisputeStatus.RESOLVED
        assert open_dispute.outcome == DisputeOutcome.REFUND
        assert open_dispute.resolved_by == admin_user
        assert open_dispute.resolved_at == at
        assert not open_dispute.is_open

    def test_resolved_dispute_never_reopens(self, db, open_dispute, admin_user):
        open_dispute.resolve(admin_user, DisputeOutcome.RELEASE, "Work fine", timezone.now())
        open_dispute.save()

        with pytest.raises(TransitionNotAllowed):
            open_dispute.resolve(admin_user, DisputeOutcome.REFUND, "Again", timezone.now())

    def test_only_admin_may_resolve(self, db, open_dispute, client_user, admin_user):
        assert has_transition_perm(open_dispute.resolve, admin_user)
        assert not has_transition_perm(open_dispute.resolve, client_user)


# =============================================================================
# Database Constraints
# =============================================================================


class TestConstraints:
    @pytest.mark.parametrize("model", [Booking, Review])
    def test_check_constraints_declare_condition(self, model):
        checks = [c for c in model._meta.constraints if isinstance(c, models.CheckConstraint)]

        assert checks
        for constraint in checks:
            _, _, kwargs = constraint.deconstruct()
            assert "condition" in kwargs
            assert "check" not in kwargs

    def test_booking_amount_must_be_positive(self, db, client_user, creator_user):
        with pytest.raises(IntegrityError), transaction.atomic():
            BookingFactory(client=client_user, creator=creator_user, usdc_amount=Decimal("0"))

    @pytest.mark.parametrize("rating", [0, 6])
    def test_review_rating_range(self, db, rating):
        with pytest.raises(IntegrityError), transaction.atomic():
            ReviewFactory(rating=rating)
