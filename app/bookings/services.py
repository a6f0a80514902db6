"""
Booking services: the call boundary for booking, dispute and review operations.

Every public method returns a ServiceResult. Domain errors raised by the
state machine or validators are caught here and returned as failures
carrying the error's message and error_code, so views, tasks and admin
tools never see an exception for an expected outcome.

Services:
    BookingService: create, start work, proof, accept, cancel, force release/refund
    DisputeService: open and resolve disputes
    ReviewService: post-completion ratings

Usage:
    from bookings.services import BookingService, DisputeService

    result = BookingService.accept_delivery(booking_id, request.user)
    if not result.success:
        # result.error_code in {"INVALID_TRANSITION", "UNAUTHORIZED",
        #                       "CONCURRENT_MODIFICATION", "NOT_FOUND"}
        ...

    result = DisputeService.resolve_dispute(dispute_id, admin, "refund", "Work not delivered")
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count

from bookings.exceptions import (
    BookingNotFoundError,
    DisputeNotFoundError,
    UnauthorizedActorError,
)
from bookings.models import Booking, Dispute, Review
from bookings.state_machine import BookingStateMachine
from bookings.state_machines import REVIEWABLE_STATUSES, DisputeOutcome
from core.exceptions import BaseApplicationError, ConflictError, ValidationError
from core.services import BaseService, ServiceResult
from payments.state_machines import PaymentNetwork
from payments.validators import validate_booking_amount

if TYPE_CHECKING:
    from uuid import UUID

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DISPUTE_REASON_MIN_LENGTH = 10
DISPUTE_REASON_MAX_LENGTH = 1000
RESOLUTION_NOTE_MIN_LENGTH = 5
RESOLUTION_NOTE_MAX_LENGTH = 500
CANCELLATION_REASON_MAX_LENGTH = 500


def get_booking(booking_id) -> Booking:
    """
    Load a booking by id.

    Raises:
        BookingNotFoundError: Unknown or malformed id
    """
    try:
        booking = (
            Booking.objects.select_related("client", "creator")
            .filter(pk=booking_id)
            .first()
        )
    except (DjangoValidationError, ValueError):
        booking = None
    if booking is None:
        raise BookingNotFoundError(
            "Booking not found", details={"booking_id": str(booking_id)}
        )
    return booking


def _validate_text(value: str, field: str, min_length: int, max_length: int) -> str:
    text = (value or "").strip()
    if not min_length <= len(text) <= max_length:
        raise ValidationError(
            f"{field.replace('_', ' ').capitalize()} must be between "
            f"{min_length} and {max_length} characters",
            error_code=f"INVALID_{field.upper()}",
            details={"min_length": min_length, "max_length": max_length},
        )
    return text


def parse_rating(value) -> int:
    """
    Parse a 1-5 star rating.

    Accepts ints and whole-number strings or floats ("4", 4.0). Booleans,
    fractional values and anything non-numeric are rejected rather than
    truncated.

    Raises:
        ValidationError: INVALID_RATING
    """
    rating = None
    if isinstance(value, bool):
        pass
    elif isinstance(value, int):
        rating = value
    elif isinstance(value, float):
        if value.is_integer():
            rating = int(value)
    elif isinstance(value, Decimal):
        if value.is_finite() and value == value.to_integral_value():
            rating = int(value)
    elif isinstance(value, str) and value.strip().isdecimal():
        rating = int(value.strip())

    if rating is None or not 1 <= rating <= 5:
        raise ValidationError(
            "Rating must be a whole number between 1 and 5",
            error_code="INVALID_RATING",
            details={"rating": str(value)},
        )
    return rating


# =============================================================================
# Booking Service
# =============================================================================


class BookingService(BaseService):
    """Booking creation and the client/creator/admin transitions."""

    @classmethod
    def create_booking(
        cls,
        client,
        creator,
        service_id: UUID,
        usdc_amount,
        chain: str = PaymentNetwork.BASE,
    ) -> ServiceResult[Booking]:
        """
        Create a draft booking.

        The price is fixed here and never changes afterwards.
        """
        try:
            if client.pk == creator.pk:
                raise ValidationError(
                    "You cannot book your own service", error_code="SELF_BOOKING"
                )
            if not creator.is_creator:
                raise ValidationError(
                    "Bookings can only be made with creators",
                    error_code="INVALID_CREATOR",
                )
            if chain not in PaymentNetwork.values:
                raise ValidationError(
                    f"Unsupported network '{chain}'",
                    error_code="UNSUPPORTED_NETWORK",
                )
            amount = validate_booking_amount(usdc_amount)
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "create_booking")

        booking = Booking.objects.create(
            client=client,
            creator=creator,
            service_id=service_id,
            usdc_amount=amount,
            chain=chain,
        )
        logger.info(
            "Booking created",
            extra={
                "booking_id": str(booking.pk),
                "client_id": str(client.pk),
                "creator_id": str(creator.pk),
                "usdc_amount": str(amount),
            },
        )
        return ServiceResult.success(booking)

    @classmethod
    def start_work(cls, booking_id, creator) -> ServiceResult[Booking]:
        try:
            booking = get_booking(booking_id)
            BookingStateMachine(booking).start_work(creator)
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "start_work")
        return ServiceResult.success(booking)

    @classmethod
    def submit_proof(
        cls,
        booking_id,
        creator,
        links=None,
        file_urls=None,
        note: str = "",
    ) -> ServiceResult[Booking]:
        """Deliver the work; the auto-release countdown starts now."""
        try:
            booking = get_booking(booking_id)
            BookingStateMachine(booking).submit_proof(
                creator, links=links, file_urls=file_urls, note=note
            )
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "submit_proof")
        return ServiceResult.success(booking)

    @classmethod
    def accept_delivery(cls, booking_id, client) -> ServiceResult[Booking]:
        try:
            booking = get_booking(booking_id)
            BookingStateMachine(booking).accept(client)
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "accept_delivery")
        return ServiceResult.success(booking)

    @classmethod
    def cancel_booking(cls, booking_id, actor, reason: str = "") -> ServiceResult[Booking]:
        """
        Cancel, request cancellation, or confirm the counterparty's request.

        Check result.data.status to tell a completed cancellation from a
        recorded request.
        """
        try:
            reason = (reason or "").strip()
            if len(reason) > CANCELLATION_REASON_MAX_LENGTH:
                raise ValidationError(
                    "Cancellation reason is too long",
                    error_code="INVALID_REASON",
                )
            booking = get_booking(booking_id)
            BookingStateMachine(booking).cancel(actor, reason)
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "cancel_booking")
        return ServiceResult.success(booking)

    @classmethod
    def force_release(cls, booking_id, admin) -> ServiceResult[Booking]:
        try:
            booking = get_booking(booking_id)
            BookingStateMachine(booking).force_release(admin)
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "force_release")
        return ServiceResult.success(booking)

    @classmethod
    def force_refund(cls, booking_id, admin) -> ServiceResult[Booking]:
        try:
            booking = get_booking(booking_id)
            BookingStateMachine(booking).force_refund(admin)
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "force_refund")
        return ServiceResult.success(booking)


# =============================================================================
# Dispute Service
# =============================================================================


class DisputeService(BaseService):
    """
    Dispute resolver.

    Only admins resolve, only open disputes can be resolved, and the
    outcome is either a full refund to the client or a normal release to
    the creator.
    """

    @classmethod
    def open_dispute(cls, booking_id, actor, reason: str) -> ServiceResult[Dispute]:
        try:
            reason = _validate_text(
                reason, "reason", DISPUTE_REASON_MIN_LENGTH, DISPUTE_REASON_MAX_LENGTH
            )
            booking = get_booking(booking_id)
            dispute = BookingStateMachine(booking).open_dispute(actor, reason)
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "open_dispute")
        return ServiceResult.success(dispute)

    @classmethod
    def resolve_dispute(
        cls, dispute_id, admin, outcome: str, note: str
    ) -> ServiceResult[Dispute]:
        """
        Resolve an open dispute as a refund or a release.

        The dispute update, the booking's terminal transition and the
        settlement are one atomic write.
        """
        try:
            if outcome not in DisputeOutcome.values:
                raise ValidationError(
                    f"Outcome must be one of: {', '.join(DisputeOutcome.values)}",
                    error_code="INVALID_OUTCOME",
                )
            note = _validate_text(
                note,
                "resolution_note",
                RESOLUTION_NOTE_MIN_LENGTH,
                RESOLUTION_NOTE_MAX_LENGTH,
            )
            if admin is None or not admin.is_platform_admin:
                raise UnauthorizedActorError("Only an admin can resolve disputes")

            dispute = cls.get_dispute(dispute_id)
            booking = get_booking(dispute.booking_id)
            BookingStateMachine(booking).resolve_dispute(dispute, admin, outcome, note)
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "resolve_dispute")
        return ServiceResult.success(dispute)

    @staticmethod
    def get_dispute(dispute_id) -> Dispute:
        try:
            dispute = Dispute.objects.filter(pk=dispute_id).first()
        except (DjangoValidationError, ValueError):
            dispute = None
        if dispute is None:
            raise DisputeNotFoundError(
                "Dispute not found", details={"dispute_id": str(dispute_id)}
            )
        return dispute


# =============================================================================
# Review Service
# =============================================================================


class ReviewService(BaseService):
    """Ratings left by booking parties once money has moved."""

    @classmethod
    def create_review(
        cls, booking_id, reviewer, rating, comment: str = ""
    ) -> ServiceResult[Review]:
        try:
            booking = get_booking(booking_id)
            reviewee = booking.counterparty_of(reviewer)
            if reviewee is None:
                raise UnauthorizedActorError(
                    "Only the client or creator of a booking can review it"
                )
            if booking.status not in REVIEWABLE_STATUSES:
                raise ValidationError(
                    "Reviews open once the booking is accepted, released or refunded",
                    error_code="REVIEW_NOT_ALLOWED",
                    details={"current_status": booking.status},
                )
            rating = parse_rating(rating)

            try:
                with transaction.atomic():
                    review = Review.objects.create(
                        booking=booking,
                        reviewer=reviewer,
                        reviewee=reviewee,
                        rating=rating,
                        comment=(comment or "").strip(),
                    )
            except IntegrityError as exc:
                raise ConflictError(
                    "You have already reviewed this booking",
                    error_code="DUPLICATE_REVIEW",
                ) from exc
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "create_review")

        logger.info(
            "Review created",
            extra={
                "booking_id": str(booking.pk),
                "reviewer_id": str(reviewer.pk),
                "rating": rating,
            },
        )
        return ServiceResult.success(review)

    @staticmethod
    def creator_rating(creator) -> dict:
        """Average rating a creator received from clients, with review count."""
        stats = Review.objects.filter(
            reviewee=creator, booking__creator=creator
        ).aggregate(average=Avg("rating"), count=Count("id"))
        average = stats["average"]
        return {
            "average": Decimal(str(average)).quantize(Decimal("0.01")) if average else None,
            "count": stats["count"],
        }
