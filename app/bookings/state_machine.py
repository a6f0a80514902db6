"""
Booking state machine.

The single authority for changing a booking's status. API views, the
Celery release sweep, payment verification and admin tools all go through
BookingStateMachine, so guards, side effects and events are identical no
matter who triggers a transition.

Every transition follows the same protocol:
    1. Check the move is legal from the current status (InvalidTransitionError)
    2. Check the actor may make it (UnauthorizedActorError)
    3. Check transition-specific preconditions (InvalidTransitionError,
       MissingProofError, DisputeAlreadyOpenError)
    4. In one transaction: apply the django-fsm transition, save with
       compare-and-swap on the loaded status, write dependent rows
       (dispute, settlement) and queue domain events
    5. A lost compare-and-swap rolls everything back and surfaces as
       ConcurrentModificationError

A failed transition leaves the in-memory instance in an undefined state;
callers reload the booking before trying again.

Usage:
    from bookings.state_machine import BookingStateMachine

    booking = Booking.objects.get(pk=booking_id)
    BookingStateMachine(booking).accept(client)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import URLValidator
from django.db import IntegrityError, transaction
from django.utils import timezone
from django_fsm import ConcurrentTransition, can_proceed, has_transition_perm

from bookings.exceptions import (
    ConcurrentModificationError,
    DisputeAlreadyOpenError,
    InvalidTransitionError,
    MissingProofError,
    UnauthorizedActorError,
)
from bookings.models import Booking, Dispute
from bookings.signals import emit_status_changed
from bookings.state_machines import (
    FUNDED_CANCELABLE_STATUSES,
    BookingStatus,
    DisputeOutcome,
    DisputeStatus,
)
from core.exceptions import ValidationError
from payments.services.settlement_service import SettlementService
from payments.state_machines import PaymentStatus, PaymentType, SettlementOutcome

if TYPE_CHECKING:
    from collections.abc import Generator, Iterable
    from datetime import datetime

logger = logging.getLogger(__name__)


# Human-readable verbs for error messages
ACTION_LABELS = {
    "submit_payment": "submit a payment for",
    "reject_payment": "reject the payment of",
    "mark_paid": "mark as paid",
    "start_work": "start work on",
    "deliver": "submit proof for",
    "accept": "accept",
    "open_dispute": "dispute",
    "auto_release": "auto-release",
    "resolve_release": "resolve a dispute on",
    "resolve_refund": "resolve a dispute on",
    "force_release": "force-release",
    "force_refund": "force-refund",
    "cancel": "cancel",
}

MAX_PROOF_LABEL_LENGTH = 100

_proof_url_validator = URLValidator(schemes=["http", "https"])


# =============================================================================
# Proof of work
# =============================================================================


def _normalize_proof_items(items: Iterable | None, kind: str, validate_url: bool) -> list[dict]:
    normalized = []
    for item in items or []:
        if isinstance(item, str):
            url, label = item, ""
        elif isinstance(item, Mapping):
            url, label = item.get("url", ""), item.get("label", "")
        else:
            raise ValidationError(
                f"Each proof {kind} must be a URL or an object with a url",
                error_code="INVALID_PROOF",
            )

        url = (url or "").strip()
        label = (label or "").strip()[:MAX_PROOF_LABEL_LENGTH]
        if not url:
            continue

        if validate_url:
            try:
                _proof_url_validator(url)
            except DjangoValidationError:
                raise ValidationError(
                    f"Invalid proof link: {url}",
                    error_code="INVALID_PROOF_LINK",
                    details={"url": url},
                )

        normalized.append({"url": url, "label": label})
    return normalized


def normalize_proof(
    links: Iterable | None, file_urls: Iterable | None, note: str | None
) -> tuple[list[dict], list[dict], str]:
    """
    Clean a proof-of-work submission.

    Links must be http(s) URLs; file URLs are opaque object-storage
    locations; blank entries are dropped and the note is trimmed.

    Raises:
        ValidationError: A link is not a valid URL
        MissingProofError: Nothing left after cleaning
    """
    clean_links = _normalize_proof_items(links, "link", validate_url=True)
    clean_files = _normalize_proof_items(file_urls, "file", validate_url=False)
    clean_note = (note or "").strip()

    if not (clean_links or clean_files or clean_note):
        raise MissingProofError(
            "Provide at least one link, file or note as proof of work"
        )
    return clean_links, clean_files, clean_note


# =============================================================================
# State machine
# =============================================================================


class BookingStateMachine:
    """
    Applies transitions to one loaded booking.

    The booking snapshot passed in is the compare-and-swap baseline: if the
    stored status no longer matches it at save time, the transition fails
    with ConcurrentModificationError.
    """

    def __init__(self, booking: Booking):
        self.booking = booking

    # ==========================================================================
    # Guards and transition wrapper
    # ==========================================================================

    def _details(self, action: str, **extra) -> dict:
        return {
            "booking_id": str(self.booking.pk),
            "current_status": str(self.booking.status),
            "action": action,
            **extra,
        }

    def _check(self, action: str, actor) -> None:
        method = getattr(self.booking, action)
        if not can_proceed(method, check_conditions=False):
            raise InvalidTransitionError(
                f"Cannot {ACTION_LABELS[action]} a booking in "
                f"'{self.booking.status}' status",
                details=self._details(action),
            )
        if not has_transition_perm(method, actor):
            raise UnauthorizedActorError(
                f"You are not allowed to {ACTION_LABELS[action]} this booking",
                details=self._details(action),
            )

    @contextmanager
    def _transition(self, action: str, actor) -> Generator[str, None, None]:
        """
        Run one transition atomically and translate a lost CAS.

        Yields the status the booking had before the transition.
        """
        from_status = str(self.booking.status)
        try:
            with transaction.atomic():
                yield from_status
        except ConcurrentTransition as exc:
            logger.info(
                "Booking transition lost a concurrent update",
                extra={
                    "booking_id": str(self.booking.pk),
                    "action": action,
                    "expected_status": from_status,
                },
            )
            raise ConcurrentModificationError(
                "Booking was modified by another request; reload and retry",
                details={
                    "booking_id": str(self.booking.pk),
                    "expected_status": from_status,
                    "action": action,
                },
            ) from exc

    def _finish(self, action: str, from_status: str, actor, at: datetime) -> None:
        emit_status_changed(self.booking, from_status, action, actor, at)
        logger.info(
            "Booking transition applied",
            extra={
                "booking_id": str(self.booking.pk),
                "action": action,
                "from_status": from_status,
                "to_status": str(self.booking.status),
                "actor_id": str(actor.pk) if actor is not None else None,
            },
        )

    # ==========================================================================
    # Payment-driven transitions
    # ==========================================================================

    def submit_payment(self, payer, tx_hash: str, chain: str, at=None) -> Booking:
        """DRAFT | PAYMENT_REJECTED -> PENDING"""
        at = at or timezone.now()
        self._check("submit_payment", payer)
        with self._transition("submit_payment", payer) as from_status:
            self.booking.submit_payment(tx_hash, chain)
            self.booking.save()
            self._finish("submit_payment", from_status, payer, at)
        return self.booking

    def mark_paid(self, admin, at=None) -> Booking:
        """PENDING | PAYMENT_REJECTED -> PAID, once a verified payment exists."""
        at = at or timezone.now()
        self._check("mark_paid", admin)

        has_verified_payment = self.booking.payments.filter(
            status=PaymentStatus.VERIFIED,
            payment_type=PaymentType.SERVICE_BOOKING,
        ).exists()
        if not has_verified_payment:
            raise InvalidTransitionError(
                "Payment not yet verified",
                details=self._details("mark_paid", reason="payment_not_verified"),
            )

        with self._transition("mark_paid", admin) as from_status:
            self.booking.mark_paid()
            self.booking.save()
            self._finish("mark_paid", from_status, admin, at)
        return self.booking

    def reject_payment(self, admin, at=None) -> Booking:
        """PENDING -> PAYMENT_REJECTED"""
        at = at or timezone.now()
        self._check("reject_payment", admin)
        with self._transition("reject_payment", admin) as from_status:
            self.booking.reject_payment()
            self.booking.save()
            self._finish("reject_payment", from_status, admin, at)
        return self.booking

    # ==========================================================================
    # Creator transitions
    # ==========================================================================

    def start_work(self, creator, at=None) -> Booking:
        """
        PAID -> PAID with work_started_at set.

        Idempotent: a second call returns the booking unchanged.
        """
        at = at or timezone.now()
        self._check("start_work", creator)
        if self.booking.work_started:
            return self.booking

        with self._transition("start_work", creator) as from_status:
            self.booking.start_work(at)
            self.booking.save()
            self._finish("start_work", from_status, creator, at)
        return self.booking

    def submit_proof(self, creator, links=None, file_urls=None, note="", at=None) -> Booking:
        """PAID -> DELIVERED; starts the release window."""
        at = at or timezone.now()
        self._check("deliver", creator)

        if not self.booking.work_started:
            raise InvalidTransitionError(
                "Work has not been started",
                details=self._details("deliver", reason="work_not_started"),
            )
        clean_links, clean_files, clean_note = normalize_proof(links, file_urls, note)

        with self._transition("deliver", creator) as from_status:
            self.booking.deliver(clean_links, clean_files, clean_note, at)
            self.booking.save()
            self._finish("deliver", from_status, creator, at)
        return self.booking

    # ==========================================================================
    # Client transitions
    # ==========================================================================

    def accept(self, client, at=None) -> Booking:
        """DELIVERED -> ACCEPTED; releases the creator share."""
        at = at or timezone.now()
        self._check("accept", client)
        with self._transition("accept", client) as from_status:
            self.booking.accept(at)
            self.booking.save()
            SettlementService.apply_settlement(self.booking, SettlementOutcome.RELEASE)
            self._finish("accept", from_status, client, at)
        return self.booking

    def open_dispute(self, actor, reason: str, at=None) -> Dispute:
        """DELIVERED -> DISPUTED; creates the open Dispute row."""
        at = at or timezone.now()

        if (
            self.booking.status == BookingStatus.DISPUTED
            or Dispute.objects.filter(booking_id=self.booking.pk).exists()
        ):
            raise DisputeAlreadyOpenError(
                "This booking has already been disputed",
                details=self._details("open_dispute"),
            )
        self._check("open_dispute", actor)

        with self._transition("open_dispute", actor) as from_status:
            self.booking.open_dispute()
            self.booking.save()
            try:
                with transaction.atomic():
                    dispute = Dispute.objects.create(
                        booking=self.booking,
                        opened_by=actor,
                        reason=reason,
                    )
            except IntegrityError as exc:
                raise DisputeAlreadyOpenError(
                    "This booking has already been disputed",
                    details=self._details("open_dispute"),
                ) from exc
            self._finish("open_dispute", from_status, actor, at)
        return dispute

    # ==========================================================================
    # Time-driven transition
    # ==========================================================================

    def auto_release(self, at=None) -> Booking:
        """
        DELIVERED -> RELEASED once release_at has passed and no dispute is open.

        Called by the release sweep; there is no actor.
        """
        at = at or timezone.now()
        self._check("auto_release", None)

        if self.booking.release_at is None or at < self.booking.release_at:
            raise InvalidTransitionError(
                "Release window has not elapsed",
                details=self._details(
                    "auto_release",
                    release_at=self.booking.release_at.isoformat()
                    if self.booking.release_at
                    else None,
                ),
            )
        if Dispute.objects.filter(
            booking_id=self.booking.pk, status=DisputeStatus.OPEN
        ).exists():
            raise InvalidTransitionError(
                "Booking has an open dispute",
                details=self._details("auto_release", reason="dispute_open"),
            )

        with self._transition("auto_release", None) as from_status:
            self.booking.auto_release(at)
            self.booking.save()
            SettlementService.apply_settlement(self.booking, SettlementOutcome.RELEASE)
            self._finish("auto_release", from_status, None, at)
        return self.booking

    # ==========================================================================
    # Admin transitions
    # ==========================================================================

    def resolve_dispute(self, dispute: Dispute, admin, outcome: str, note: str, at=None) -> Booking:
        """
        DISPUTED -> REFUNDED | RELEASED, together with OPEN -> RESOLVED on
        the dispute. Both rows and the settlement commit or roll back as one.
        """
        at = at or timezone.now()

        if outcome == DisputeOutcome.REFUND:
            action, settlement_outcome = "resolve_refund", SettlementOutcome.REFUND
        elif outcome == DisputeOutcome.RELEASE:
            action, settlement_outcome = "resolve_release", SettlementOutcome.RELEASE
        else:
            raise ValidationError(
                f"Unknown dispute outcome '{outcome}'",
                error_code="INVALID_OUTCOME",
                details={"allowed": list(DisputeOutcome.values)},
            )

        if not dispute.is_open:
            raise InvalidTransitionError(
                "Dispute has already been resolved",
                details=self._details(action, dispute_id=str(dispute.pk)),
            )
        self._check(action, admin)
        if not has_transition_perm(dispute.resolve, admin):
            raise UnauthorizedActorError("Only an admin can resolve disputes")

        with self._transition(action, admin) as from_status:
            dispute.resolve(admin, outcome, note, at)
            dispute.save()
            getattr(self.booking, action)(at)
            self.booking.save()
            SettlementService.apply_settlement(self.booking, settlement_outcome)
            self._finish(action, from_status, admin, at)
        return self.booking

    def force_release(self, admin, at=None) -> Booking:
        """DELIVERED -> RELEASED before the window elapses."""
        at = at or timezone.now()
        self._check("force_release", admin)
        with self._transition("force_release", admin) as from_status:
            self.booking.force_release(at)
            self.booking.save()
            SettlementService.apply_settlement(self.booking, SettlementOutcome.RELEASE)
            self._finish("force_release", from_status, admin, at)
        return self.booking

    def force_refund(self, admin, at=None) -> Booking:
        """PAID | DELIVERED -> REFUNDED"""
        at = at or timezone.now()
        self._check("force_refund", admin)
        with self._transition("force_refund", admin) as from_status:
            self.booking.force_refund(at)
            self.booking.save()
            SettlementService.apply_settlement(self.booking, SettlementOutcome.REFUND)
            self._finish("force_refund", from_status, admin, at)
        return self.booking

    # ==========================================================================
    # Cancellation
    # ==========================================================================

    def cancel(self, actor, reason: str = "", at=None) -> Booking:
        """
        Cancel the booking, or record one party's request to.

        - Admins cancel directly from any cancelable status.
        - Before funds are held either party cancels directly.
        - Once funds are held (paid, delivered) the first party records a
          request and the booking is canceled when the other party confirms.

        Returns the booking; its status stays unchanged when only a request
        was recorded.
        """
        at = at or timezone.now()
        self._check("cancel", actor)

        booking = self.booking
        needs_agreement = (
            booking.status in FUNDED_CANCELABLE_STATUSES
            and not actor.is_platform_admin
        )
        if needs_agreement and booking.cancellation_requested_by_id in (None, actor.pk):
            return self._request_cancellation(actor, reason, at)

        with self._transition("cancel", actor) as from_status:
            booking.cancel(reason, at)
            booking.save()
            self._finish("cancel", from_status, actor, at)
        return booking

    def _request_cancellation(self, actor, reason: str, at) -> Booking:
        booking = self.booking
        with self._transition("request_cancellation", actor) as from_status:
            booking.cancellation_requested_by = actor
            booking.cancellation_reason = reason
            booking.save()
            emit_status_changed(booking, from_status, "request_cancellation", actor, at)
        logger.info(
            "Booking cancellation requested",
            extra={"booking_id": str(booking.pk), "actor_id": str(actor.pk)},
        )
        return booking
