"""
Booking lifecycle exceptions.

Exception Hierarchy:
    InvalidTransitionError (ConflictError) - move not legal from current state
    ConcurrentModificationError (ConflictError) - compare-and-swap lost a race
    DisputeAlreadyOpenError (InvalidTransitionError) - booking already disputed
    UnauthorizedActorError (PermissionDeniedError) - wrong role or not a party
    MissingProofError (ValidationError) - delivery without link, file or note
    BookingNotFoundError / DisputeNotFoundError (NotFoundError)

Every error carries a stable error_code so API clients can tell a
retryable precondition ("payment not yet verified") from a final refusal.

Usage:
    from bookings.exceptions import ConcurrentModificationError

    try:
        BookingStateMachine(booking).accept(client)
    except ConcurrentModificationError:
        booking = Booking.objects.get(pk=booking.pk)  # reload, then decide
"""

from __future__ import annotations

from core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


class InvalidTransitionError(ConflictError):
    """
    Raised when a transition is not legal from the booking's current state,
    or a precondition of the transition does not hold.

    Example:
        raise InvalidTransitionError(
            "Cannot accept a booking in 'paid' status",
            details={"current_status": "paid", "action": "accept"},
        )
    """

    default_error_code: str = "INVALID_TRANSITION"


class ConcurrentModificationError(ConflictError):
    """
    Raised when the conditional status write matched zero rows.

    Another actor moved the booking first. Callers reload and decide
    whether the operation still makes sense; they never replay the
    same write blindly.
    """

    default_error_code: str = "CONCURRENT_MODIFICATION"


class DisputeAlreadyOpenError(InvalidTransitionError):
    """A booking can be disputed once; a second attempt is an illegal transition."""

    default_error_code: str = "DISPUTE_ALREADY_OPEN"


class UnauthorizedActorError(PermissionDeniedError):
    default_error_code: str = "UNAUTHORIZED"


class MissingProofError(ValidationError):
    """Raised when proof has no valid link, no file and an empty note."""

    default_error_code: str = "MISSING_PROOF"


class BookingNotFoundError(NotFoundError):
    default_error_code: str = "NOT_FOUND"


class DisputeNotFoundError(NotFoundError):
    default_error_code: str = "NOT_FOUND"
