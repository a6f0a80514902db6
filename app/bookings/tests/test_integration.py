"""
End-to-end booking journeys through the service layer.

Each test drives a booking from creation to a terminal state using only
BookingService, PaymentService, DisputeService and the release sweep, the
same entry points the API views and Celery tasks use.
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from bookings.services import BookingService, DisputeService, ReviewService
from bookings.state_machines import BookingStatus, DisputeOutcome
from bookings.tests.factories import reload_booking
from bookings.workers import ReleaseScheduler
from notifications.models import Notification, NotificationKind
from payments.models import Payment, Settlement
from payments.services import PaymentService
from payments.state_machines import PaymentStatus, PayoutStatus, SettlementOutcome

TX_HASH = "0x" + "ab" * 32
PROOF = ["https://example.com/final-master.wav"]


@pytest.fixture
def funded_booking(db, client_user, creator_user, admin_user):
    """A booking created, paid and verified through the services."""
    created = BookingService.create_booking(
        client_user, creator_user, uuid.uuid4(), "100.00", chain="base"
    )
    assert created.success
    booking = created.data
    assert booking.status == BookingStatus.DRAFT

    submitted = PaymentService.submit_payment(
        payer=client_user,
        amount="100.00",
        network="base",
        tx_hash=TX_HASH,
        booking_id=booking.pk,
    )
    assert submitted.success
    assert reload_booking(booking).status == BookingStatus.PENDING

    verified = PaymentService.verify_payment(submitted.data.pk, admin_user)
    assert verified.success
    assert verified.data.status == PaymentStatus.VERIFIED

    booking = reload_booking(booking)
    assert booking.status == BookingStatus.PAID
    return booking


def deliver(booking, creator):
    assert BookingService.start_work(booking.pk, creator).success
    result = BookingService.submit_proof(booking.pk, creator, links=PROOF)
    assert result.success
    return reload_booking(booking)


class TestAutoReleaseJourney:
    def test_draft_to_released_by_sweep(
        self, funded_booking, client_user, creator_user, settings,
        django_capture_on_commit_callbacks,
    ):
        with django_capture_on_commit_callbacks(execute=True):
            booking = deliver(funded_booking, creator_user)

            assert booking.status == BookingStatus.DELIVERED
            assert booking.work_started_at is not None
            window = timedelta(hours=settings.ESCROW_RELEASE_WINDOW_HOURS)
            assert booking.release_at == booking.delivered_at + window

            early = ReleaseScheduler().run_sweep(now=booking.release_at - timedelta(minutes=1))
            assert early.released == 0
            assert reload_booking(booking).status == BookingStatus.DELIVERED

            now = booking.release_at + timedelta(minutes=1)
            result = ReleaseScheduler().run_sweep(now=now)

        assert result.released == 1
        assert result.released_ids == [booking.pk]

        booking = reload_booking(booking)
        assert booking.status == BookingStatus.RELEASED
        assert booking.released_at == now
        assert booking.release_at is not None

        settlement = Settlement.objects.get(booking=booking)
        assert settlement.outcome == SettlementOutcome.RELEASE
        assert settlement.creator_share == Decimal("85.00")
        assert settlement.platform_share == Decimal("15.00")
        assert settlement.client_refund == Decimal("0.00")
        assert settlement.payout_status == PayoutStatus.PENDING

        assert Payment.objects.get(booking=booking).status == PaymentStatus.VERIFIED
        assert Notification.objects.filter(
            recipient=creator_user, kind=NotificationKind.SETTLEMENT
        ).count() == 1
        assert Notification.objects.filter(
            recipient=client_user, booking=booking, kind=NotificationKind.BOOKING_STATUS
        ).exists()

    def test_second_sweep_leaves_settlement_alone(self, funded_booking, creator_user):
        booking = deliver(funded_booking, creator_user)
        now = booking.release_at + timedelta(minutes=1)

        ReleaseScheduler().run_sweep(now=now)
        again = ReleaseScheduler().run_sweep(now=now + timedelta(hours=1))

        assert again.released == 0
        assert Settlement.objects.filter(booking=booking).count() == 1

    def test_both_parties_review_after_release(
        self, funded_booking, client_user, creator_user
    ):
        booking = deliver(funded_booking, creator_user)
        ReleaseScheduler().run_sweep(now=booking.release_at)

        assert ReviewService.create_review(booking.pk, client_user, 5, "Great mix").success
        assert ReviewService.create_review(booking.pk, creator_user, "4").success
        assert ReviewService.creator_rating(creator_user) == {
            "average": Decimal("5.00"),
            "count": 1,
        }


class TestClientAcceptJourney:
    def test_accept_before_deadline(self, funded_booking, client_user, creator_user):
        booking = deliver(funded_booking, creator_user)

        result = BookingService.accept_delivery(booking.pk, client_user)

        assert result.success
        booking = reload_booking(booking)
        assert booking.status == BookingStatus.ACCEPTED
        assert booking.settlement.creator_share == Decimal("85.00")

        swept = ReleaseScheduler().run_sweep(now=booking.release_at + timedelta(days=1))
        assert swept.released == 0
        assert reload_booking(booking).status == BookingStatus.ACCEPTED


class TestDisputeJourney:
    def test_dispute_blocks_sweep_then_refund(
        self, funded_booking, client_user, creator_user, admin_user
    ):
        booking = deliver(funded_booking, creator_user)

        opened = DisputeService.open_dispute(
            booking.pk, client_user, "The stems were never uploaded"
        )
        assert opened.success

        swept = ReleaseScheduler().run_sweep(now=booking.release_at + timedelta(days=3))
        assert swept.released == 0
        assert reload_booking(booking).status == BookingStatus.DISPUTED

        resolved = DisputeService.resolve_dispute(
            opened.data.pk, admin_user, DisputeOutcome.REFUND, "No files delivered"
        )
        assert resolved.success

        booking = reload_booking(booking)
        assert booking.status == BookingStatus.REFUNDED
        assert booking.release_at is None
        assert booking.settlement.outcome == SettlementOutcome.REFUND
        assert booking.settlement.client_refund == Decimal("100.00")
        assert booking.settlement.creator_share == Decimal("0.00")


class TestPaymentRejectionJourney:
    def test_rejected_payment_then_new_hash(
        self, db, client_user, creator_user, admin_user
    ):
        booking = BookingService.create_booking(
            client_user, creator_user, uuid.uuid4(), "100.00"
        ).data
        first = PaymentService.submit_payment(
            payer=client_user, amount="100.00", network="base",
            tx_hash=TX_HASH, booking_id=booking.pk,
        ).data

        assert PaymentService.reject_payment(first.pk, admin_user, "Not on chain").success
        assert reload_booking(booking).status == BookingStatus.PAYMENT_REJECTED

        second = PaymentService.submit_payment(
            payer=client_user, amount="100.00", network="base",
            tx_hash="0x" + "cd" * 32, booking_id=booking.pk,
        )
        assert second.success
        assert PaymentService.verify_payment(second.data.pk, admin_user).success
        assert reload_booking(booking).status == BookingStatus.PAID


class TestStatusPreservingWrites:
    def test_cancel_request_and_start_work_both_persist(
        self, funded_booking, client_user, creator_user
    ):
        """Sequential writes that keep the status never drop each other's fields."""
        requested = BookingService.cancel_booking(funded_booking.pk, client_user, "Budget cut")
        started = BookingService.start_work(funded_booking.pk, creator_user)

        assert requested.success
        assert started.success
        booking = reload_booking(funded_booking)
        assert booking.status == BookingStatus.PAID
        assert booking.cancellation_requested_by == client_user
        assert booking.cancellation_reason == "Budget cut"
        assert booking.work_started_at is not None
        assert booking.version == funded_booking.version + 2

        confirmed = BookingService.cancel_booking(funded_booking.pk, creator_user)

        assert confirmed.success
        assert reload_booking(funded_booking).status == BookingStatus.CANCELED
