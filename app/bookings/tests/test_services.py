"""
Tests for the booking service layer.

Services return ServiceResult for every expected failure; these tests
check the error codes callers branch on and that multi-row writes are
atomic.
"""

import uuid
from decimal import Decimal
from unittest import mock

import pytest
from django.db import IntegrityError

from authentication.tests.factories import UserFactory
from bookings.models import Booking, Dispute, Review
from bookings.services import BookingService, DisputeService, ReviewService
from bookings.state_machines import BookingStatus, DisputeOutcome, DisputeStatus
from bookings.tests.factories import BookingFactory, ReviewFactory, reload_booking
from payments.models import Settlement


# =============================================================================
# BookingService
# =============================================================================


class TestCreateBooking:
    def test_creates_draft(self, db, client_user, creator_user):
        service_id = uuid.uuid4()

        result = BookingService.create_booking(
            client_user, creator_user, service_id, "49.99", chain="solana"
        )

        assert result.success
        booking = result.data
        assert booking.status == BookingStatus.DRAFT
        assert booking.usdc_amount == Decimal("49.99")
        assert booking.chain == "solana"
        assert booking.version == 1

    def test_cannot_book_yourself(self, db, creator_user):
        result = BookingService.create_booking(
            creator_user, creator_user, uuid.uuid4(), "10"
        )

        assert not result.success
        assert result.error_code == "SELF_BOOKING"

    def test_creator_role_required(self, db, client_user):
        result = BookingService.create_booking(
            client_user, UserFactory(), uuid.uuid4(), "10"
        )

        assert result.error_code == "INVALID_CREATOR"

    @pytest.mark.parametrize(
        ("amount", "error_code"),
        [
            ("0", "AMOUNT_OUT_OF_RANGE"),
            ("-5", "AMOUNT_OUT_OF_RANGE"),
            ("10.001", "INVALID_AMOUNT"),
            ("abc", "INVALID_AMOUNT"),
            ("1000000", "AMOUNT_OUT_OF_RANGE"),
        ],
    )
    def test_invalid_amounts(self, db, client_user, creator_user, amount, error_code):
        result = BookingService.create_booking(
            client_user, creator_user, uuid.uuid4(), amount
        )

        assert result.error_code == error_code
        assert not Booking.objects.exists()

    def test_unsupported_network(self, db, client_user, creator_user):
        result = BookingService.create_booking(
            client_user, creator_user, uuid.uuid4(), "10", chain="bitcoin"
        )

        assert result.error_code == "UNSUPPORTED_NETWORK"


class TestBookingTransitionsViaService:
    def test_unknown_booking(self, db, client_user):
        result = BookingService.accept_delivery(uuid.uuid4(), client_user)

        assert result.error_code == "NOT_FOUND"

    def test_malformed_id(self, db, client_user):
        result = BookingService.accept_delivery("not-a-uuid", client_user)

        assert result.error_code == "NOT_FOUND"

    def test_start_work_then_proof(self, db, paid_booking, creator_user):
        assert BookingService.start_work(paid_booking.pk, creator_user).success

        result = BookingService.submit_proof(
            paid_booking.pk, creator_user, links=["https://example.com/video"]
        )

        assert result.success
        assert result.data.status == BookingStatus.DELIVERED
        assert result.data.release_at is not None

    def test_missing_proof_error_code(self, db, started_booking, creator_user):
        result = BookingService.submit_proof(started_booking.pk, creator_user)

        assert result.error_code == "MISSING_PROOF"

    def test_wrong_actor_error_code(self, db, delivered_booking, creator_user):
        result = BookingService.accept_delivery(delivered_booking.pk, creator_user)

        assert result.error_code == "UNAUTHORIZED"

    def test_illegal_transition_error_code(self, db, paid_booking, client_user):
        result = BookingService.accept_delivery(paid_booking.pk, client_user)

        assert result.error_code == "INVALID_TRANSITION"
        assert "paid" in result.error

    def test_cancel_reason_length(self, db, draft_booking, client_user):
        result = BookingService.cancel_booking(draft_booking.pk, client_user, "x" * 501)

        assert result.error_code == "INVALID_REASON"
        assert reload_booking(draft_booking).status == BookingStatus.DRAFT

    def test_cancel_request_keeps_status(self, db, delivered_booking, creator_user):
        result = BookingService.cancel_booking(delivered_booking.pk, creator_user, "Sick")

        assert result.success
        assert result.data.status == BookingStatus.DELIVERED
        assert result.data.cancellation_requested_by_id == creator_user.pk

    def test_force_refund_requires_admin(self, db, paid_booking, client_user, admin_user):
        denied = BookingService.force_refund(paid_booking.pk, client_user)
        assert denied.error_code == "UNAUTHORIZED"

        result = BookingService.force_refund(paid_booking.pk, admin_user)

        assert result.success
        assert result.data.status == BookingStatus.REFUNDED


# =============================================================================
# DisputeService
# =============================================================================


class TestOpenDispute:
    def test_opens_dispute(self, db, delivered_booking, client_user):
        result = DisputeService.open_dispute(
            delivered_booking.pk, client_user, "  The video is only 10 seconds long  "
        )

        assert result.success
        assert result.data.reason == "The video is only 10 seconds long"
        assert reload_booking(delivered_booking).status == BookingStatus.DISPUTED

    @pytest.mark.parametrize("reason", ["", "too short", "x" * 1001])
    def test_reason_length(self, db, delivered_booking, client_user, reason):
        result = DisputeService.open_dispute(delivered_booking.pk, client_user, reason)

        assert result.error_code == "INVALID_REASON"
        assert not Dispute.objects.exists()

    def test_second_dispute(self, db, open_dispute, creator_user):
        result = DisputeService.open_dispute(
            open_dispute.booking_id, creator_user, "Client asked for extra work"
        )

        assert result.error_code == "DISPUTE_ALREADY_OPEN"

    def test_dispute_row_failure_rolls_back_status(self, db, delivered_booking, client_user):
        """Booking status and dispute row are written together."""
        with mock.patch.object(
            Dispute.objects, "create", side_effect=IntegrityError("duplicate")
        ):
            result = DisputeService.open_dispute(
                delivered_booking.pk, client_user, "Nothing was delivered"
            )

        assert result.error_code == "DISPUTE_ALREADY_OPEN"
        assert reload_booking(delivered_booking).status == BookingStatus.DELIVERED


class TestResolveDispute:
    def test_refund(self, db, open_dispute, admin_user):
        result = DisputeService.resolve_dispute(
            open_dispute.pk, admin_user, DisputeOutcome.REFUND, "Files were corrupt"
        )

        assert result.success
        assert result.data.status == DisputeStatus.RESOLVED
        booking = reload_booking(open_dispute.booking)
        assert booking.status == BookingStatus.REFUNDED
        assert booking.settlement.client_refund == Decimal("100.00")

    def test_release(self, db, open_dispute, admin_user):
        result = DisputeService.resolve_dispute(
            open_dispute.pk, admin_user, "release", "Delivered as agreed"
        )

        assert result.success
        assert reload_booking(open_dispute.booking).status == BookingStatus.RELEASED

    def test_only_admin(self, db, open_dispute, client_user):
        result = DisputeService.resolve_dispute(
            open_dispute.pk, client_user, "refund", "Please refund me"
        )

        assert result.error_code == "UNAUTHORIZED"

    def test_invalid_outcome(self, db, open_dispute, admin_user):
        result = DisputeService.resolve_dispute(
            open_dispute.pk, admin_user, "split", "Half and half"
        )

        assert result.error_code == "INVALID_OUTCOME"

    @pytest.mark.parametrize("note", ["", "ok", "x" * 501])
    def test_note_length(self, db, open_dispute, admin_user, note):
        result = DisputeService.resolve_dispute(open_dispute.pk, admin_user, "refund", note)

        assert result.error_code == "INVALID_RESOLUTION_NOTE"

    def test_unknown_dispute(self, db, admin_user):
        result = DisputeService.resolve_dispute(
            uuid.uuid4(), admin_user, "refund", "Does not exist"
        )

        assert result.error_code == "NOT_FOUND"

    def test_settlement_failure_rolls_back_resolution(self, db, open_dispute, admin_user):
        """Dispute, booking status and settlement commit or roll back as one."""
        with mock.patch(
            "bookings.state_machine.SettlementService.apply_settlement",
            side_effect=RuntimeError("database went away"),
        ):
            with pytest.raises(RuntimeError):
                DisputeService.resolve_dispute(
                    open_dispute.pk, admin_user, "refund", "Files were corrupt"
                )

        assert Dispute.objects.get(pk=open_dispute.pk).status == DisputeStatus.OPEN
        assert reload_booking(open_dispute.booking).status == BookingStatus.DISPUTED
        assert not Settlement.objects.exists()


# =============================================================================
# ReviewService
# =============================================================================


class TestReviews:
    @pytest.fixture
    def released_booking(self, db, client_user, creator_user):
        return BookingFactory(
            client=client_user, creator=creator_user, status=BookingStatus.RELEASED
        )

    def test_client_reviews_creator(self, db, released_booking, client_user, creator_user):
        result = ReviewService.create_review(released_booking.pk, client_user, 4, "Nice")

        assert result.success
        assert result.data.reviewee == creator_user
        assert result.data.rating == 4

    def test_creator_reviews_client(self, db, released_booking, client_user, creator_user):
        result = ReviewService.create_review(released_booking.pk, creator_user, 5)

        assert result.data.reviewee == client_user

    def test_one_review_per_party(self, db, released_booking, client_user):
        ReviewService.create_review(released_booking.pk, client_user, 5)

        result = ReviewService.create_review(released_booking.pk, client_user, 1)

        assert result.error_code == "DUPLICATE_REVIEW"
        assert Review.objects.count() == 1

    def test_not_before_completion(self, db, delivered_booking, client_user):
        result = ReviewService.create_review(delivered_booking.pk, client_user, 5)

        assert result.error_code == "REVIEW_NOT_ALLOWED"

    @pytest.mark.parametrize("rating", [0, 6, "five", None])
    def test_rating_range(self, db, released_booking, client_user, rating):
        result = ReviewService.create_review(released_booking.pk, client_user, rating)

        assert result.error_code == "INVALID_RATING"

    @pytest.mark.parametrize("rating", [4.7, 0.5, True, False, "4.7", "", Decimal("3.5")])
    def test_non_integer_rating_is_rejected(self, db, released_booking, client_user, rating):
        """Fractions are not truncated and booleans are not numbers."""
        result = ReviewService.create_review(released_booking.pk, client_user, rating)

        assert result.error_code == "INVALID_RATING"
        assert not Review.objects.exists()

    @pytest.mark.parametrize("rating, stored", [(4, 4), ("4", 4), (" 5 ", 5), (3.0, 3)])
    def test_whole_number_rating_is_accepted(
        self, db, released_booking, client_user, rating, stored
    ):
        result = ReviewService.create_review(released_booking.pk, client_user, rating)

        assert result.success
        assert Review.objects.get(pk=result.data.pk).rating == stored

    def test_outsider_cannot_review(self, db, released_booking):
        result = ReviewService.create_review(released_booking.pk, UserFactory(), 5)

        assert result.error_code == "UNAUTHORIZED"

    def test_creator_rating(self, db, creator_user):
        for status, rating in [(BookingStatus.RELEASED, 5), (BookingStatus.ACCEPTED, 4)]:
            ReviewFactory(
                booking=BookingFactory(creator=creator_user, status=status), rating=rating
            )

        stats = ReviewService.creator_rating(creator_user)

        assert stats == {"average": Decimal("4.50"), "count": 2}

    def test_creator_rating_without_reviews(self, db, creator_user):
        assert ReviewService.creator_rating(creator_user) == {"average": None, "count": 0}
