"""
Payment service: submission and admin verification of crypto payments.

Flow:
    1. submit_payment: client records the on-chain transfer; the booking
       moves to pending (draft and payment_rejected both allowed)
    2. verify_payment: admin confirmed the transfer; the payment becomes
       verified and, for service bookings, the booking moves to paid in the
       same transaction
    3. reject_payment: admin could not confirm it; the booking moves to
       payment_rejected and the client can submit a new transaction

The core never talks to a chain. Verification is whatever the admin (or an
external verifier acting as admin) decides.

Usage:
    from payments.services import PaymentService

    result = PaymentService.submit_payment(
        payer=client,
        amount=booking.usdc_amount,
        network="base",
        tx_hash="0x...",
        booking_id=booking.id,
    )
    if result.error_code == "DUPLICATE_TX_HASH":
        ...
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone
from django_fsm import ConcurrentTransition, can_proceed, has_transition_perm

from bookings.exceptions import (
    ConcurrentModificationError,
    InvalidTransitionError,
    UnauthorizedActorError,
)
from core.exceptions import BaseApplicationError, ValidationError
from core.services import BaseService, ServiceResult
from payments.exceptions import (
    DuplicateTxHashError,
    PaymentAmountMismatchError,
    PaymentNotFoundError,
)
from payments.models import Payment
from payments.state_machines import PaymentType
from payments.validators import normalize_tx_hash

logger = logging.getLogger(__name__)


class PaymentService(BaseService):
    """Submission, verification and rejection of payment records."""

    # ==========================================================================
    # Submission
    # ==========================================================================

    @classmethod
    def submit_payment(
        cls,
        payer,
        amount,
        network: str,
        tx_hash: str,
        payment_type: str = PaymentType.SERVICE_BOOKING,
        booking_id=None,
        service_id=None,
        creator=None,
    ) -> ServiceResult[Payment]:
        """
        Record a payment claim in submitted state.

        service_booking payments must reference a booking owned by the payer
        and match its price exactly. creator_tier payments reference no
        booking.
        """
        # Import here to avoid circular imports
        from bookings.services import get_booking
        from bookings.state_machine import BookingStateMachine

        try:
            tx_hash = normalize_tx_hash(network, tx_hash)
            amount = cls._parse_amount(amount)
            cls._ensure_unused(network, tx_hash)

            if payment_type == PaymentType.SERVICE_BOOKING:
                if booking_id is None:
                    raise ValidationError(
                        "A booking is required for service payments",
                        error_code="BOOKING_REQUIRED",
                    )
                booking = get_booking(booking_id)
                if booking.client_id != payer.pk:
                    raise UnauthorizedActorError(
                        "Only the booking's client can pay for it"
                    )
                if amount != booking.usdc_amount:
                    raise PaymentAmountMismatchError(
                        f"Payment amount must equal the booking price of "
                        f"{booking.usdc_amount} USDC",
                        details={
                            "expected": str(booking.usdc_amount),
                            "submitted": str(amount),
                        },
                    )

                with transaction.atomic():
                    BookingStateMachine(booking).submit_payment(payer, tx_hash, network)
                    payment = cls._create(
                        payer=payer,
                        creator=booking.creator,
                        booking=booking,
                        service_id=booking.service_id,
                        amount=amount,
                        network=network,
                        payment_type=payment_type,
                        tx_hash=tx_hash,
                    )
            elif payment_type == PaymentType.CREATOR_TIER:
                if booking_id is not None:
                    raise ValidationError(
                        "Tier payments cannot reference a booking",
                        error_code="INVALID_PAYMENT_TYPE",
                    )
                payment = cls._create(
                    payer=payer,
                    creator=creator,
                    service_id=service_id,
                    amount=amount,
                    network=network,
                    payment_type=payment_type,
                    tx_hash=tx_hash,
                )
            else:
                raise ValidationError(
                    f"Unknown payment type '{payment_type}'",
                    error_code="INVALID_PAYMENT_TYPE",
                )
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "submit_payment")

        logger.info(
            "Payment submitted",
            extra={
                "payment_id": str(payment.pk),
                "booking_id": str(payment.booking_id) if payment.booking_id else None,
                "network": network,
                "tx_hash": tx_hash,
                "amount": str(amount),
            },
        )
        return ServiceResult.success(payment)

    @staticmethod
    def _parse_amount(amount) -> Decimal:
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError, TypeError):
            value = None
        if value is None or not value.is_finite() or value <= 0:
            raise ValidationError(
                "Amount must be a positive number", error_code="INVALID_AMOUNT"
            )
        return value

    @staticmethod
    def _ensure_unused(network: str, tx_hash: str) -> None:
        if Payment.objects.filter(network=network, tx_hash=tx_hash).exists():
            raise DuplicateTxHashError(
                "This transaction hash has already been submitted",
                details={"network": network, "tx_hash": tx_hash},
            )

    @staticmethod
    def _create(**fields) -> Payment:
        # The unique constraint catches a replay that slipped past _ensure_unused
        try:
            with transaction.atomic():
                return Payment.objects.create(**fields)
        except IntegrityError as exc:
            raise DuplicateTxHashError(
                "This transaction hash has already been submitted",
                details={"network": fields["network"], "tx_hash": fields["tx_hash"]},
            ) from exc

    # ==========================================================================
    # Verification
    # ==========================================================================

    @classmethod
    def verify_payment(cls, payment_id, admin) -> ServiceResult[Payment]:
        """
        Mark a payment verified; advance its booking to paid.

        Verification is append-only: a verified payment cannot be verified
        again or rejected.
        """
        # Import here to avoid circular imports
        from bookings.services import get_booking
        from bookings.state_machine import BookingStateMachine

        try:
            payment = cls.get_payment(payment_id)
            cls._check(payment, "verify", admin)

            try:
                with transaction.atomic():
                    payment.verify(admin, at=timezone.now())
                    payment.save()
                    if (
                        payment.payment_type == PaymentType.SERVICE_BOOKING
                        and payment.booking_id
                    ):
                        booking = get_booking(payment.booking_id)
                        BookingStateMachine(booking).mark_paid(admin)
            except ConcurrentTransition as exc:
                raise ConcurrentModificationError(
                    "Payment was updated by another request",
                    details={"payment_id": str(payment.pk)},
                ) from exc
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "verify_payment")

        logger.info(
            "Payment verified",
            extra={
                "payment_id": str(payment.pk),
                "booking_id": str(payment.booking_id) if payment.booking_id else None,
                "admin_id": str(admin.pk),
            },
        )
        return ServiceResult.success(payment)

    @classmethod
    def reject_payment(cls, payment_id, admin, reason: str = "") -> ServiceResult[Payment]:
        """Reject a payment; a pending booking moves to payment_rejected."""
        # Import here to avoid circular imports
        from bookings.services import get_booking
        from bookings.state_machine import BookingStateMachine
        from bookings.state_machines import BookingStatus

        try:
            payment = cls.get_payment(payment_id)
            cls._check(payment, "reject", admin)

            try:
                with transaction.atomic():
                    payment.reject(admin, reason=(reason or "").strip()[:500], at=timezone.now())
                    payment.save()
                    if payment.booking_id:
                        booking = get_booking(payment.booking_id)
                        if booking.status == BookingStatus.PENDING:
                            BookingStateMachine(booking).reject_payment(admin)
            except ConcurrentTransition as exc:
                raise ConcurrentModificationError(
                    "Payment was updated by another request",
                    details={"payment_id": str(payment.pk)},
                ) from exc
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "reject_payment")

        logger.info(
            "Payment rejected",
            extra={
                "payment_id": str(payment.pk),
                "booking_id": str(payment.booking_id) if payment.booking_id else None,
                "admin_id": str(admin.pk),
            },
        )
        return ServiceResult.success(payment)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @staticmethod
    def get_payment(payment_id) -> Payment:
        try:
            payment = Payment.objects.filter(pk=payment_id).first()
        except (DjangoValidationError, ValueError):
            payment = None
        if payment is None:
            raise PaymentNotFoundError(
                "Payment not found", details={"payment_id": str(payment_id)}
            )
        return payment

    @staticmethod
    def _check(payment: Payment, action: str, admin) -> None:
        method = getattr(payment, action)
        if not can_proceed(method):
            raise InvalidTransitionError(
                f"Payment is already {payment.status}",
                details={"payment_id": str(payment.pk), "current_status": payment.status},
            )
        if not has_transition_perm(method, admin):
            raise UnauthorizedActorError(
                "Only an admin can verify or reject payments",
                details={"payment_id": str(payment.pk)},
            )
