"""
Settlement service: persists calculator output and tracks payouts.

apply_settlement() is called by the booking state machine inside the
transaction that moves a booking to accepted, released or refunded. The
Settlement row's OneToOne link to the booking makes a second settlement
impossible even if two code paths race past their own status checks.

Usage:
    from payments.services import SettlementService

    # Inside a booking transition (raises on failure)
    settlement = SettlementService.apply_settlement(booking, SettlementOutcome.RELEASE)

    # Admin records the payout transfer
    result = SettlementService.mark_paid_out(settlement_id, admin, payout_tx_hash)
"""

from __future__ import annotations

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone
from django_fsm import ConcurrentTransition, can_proceed, has_transition_perm

from bookings.exceptions import (
    ConcurrentModificationError,
    InvalidTransitionError,
    UnauthorizedActorError,
)
from core.exceptions import BaseApplicationError
from core.services import BaseService, ServiceResult
from payments.exceptions import AlreadySettledError, SettlementNotFoundError
from payments.models import Settlement
from payments.settlement import settle, settle_refund
from payments.signals import emit_settlement_applied
from payments.state_machines import PaymentType, SettlementOutcome
from payments.validators import normalize_tx_hash

logger = logging.getLogger(__name__)


class SettlementService(BaseService):
    """Records settlements and their payouts."""

    @classmethod
    def apply_settlement(cls, booking, outcome: str) -> Settlement:
        """
        Compute and store the settlement for a finished booking.

        Must run inside the caller's transaction so the settlement and the
        booking's terminal status commit or roll back together.

        Raises:
            AlreadySettledError: The booking already has a settlement
        """
        if outcome == SettlementOutcome.REFUND:
            split = settle_refund(booking.usdc_amount)
        else:
            split = settle(booking.usdc_amount, PaymentType.SERVICE_BOOKING)

        try:
            with transaction.atomic():
                settlement = Settlement.objects.create(
                    booking=booking,
                    outcome=outcome,
                    gross_amount=split.gross_amount,
                    creator_share=split.creator_share,
                    platform_share=split.platform_share,
                    client_refund=split.client_refund,
                )
        except IntegrityError as exc:
            raise AlreadySettledError(
                "Booking has already been settled",
                details={"booking_id": str(booking.pk)},
            ) from exc

        logger.info(
            "Settlement recorded",
            extra={
                "booking_id": str(booking.pk),
                "settlement_id": str(settlement.pk),
                "outcome": outcome,
                **split.as_dict(),
            },
        )
        emit_settlement_applied(settlement)
        return settlement

    @classmethod
    def mark_paid_out(
        cls, settlement_id, admin, payout_tx_hash: str
    ) -> ServiceResult[Settlement]:
        """
        Record that the payout process transferred the funds.

        The payout hash is validated against the booking's network.
        """
        try:
            settlement = (
                Settlement.objects.select_related("booking")
                .filter(pk=settlement_id)
                .first()
            )
            if settlement is None:
                raise SettlementNotFoundError(
                    "Settlement not found",
                    details={"settlement_id": str(settlement_id)},
                )
            if not can_proceed(settlement.mark_paid_out):
                raise InvalidTransitionError(
                    "Settlement has already been paid out",
                    details={"settlement_id": str(settlement.pk)},
                )
            if not has_transition_perm(settlement.mark_paid_out, admin):
                raise UnauthorizedActorError("Only an admin can record payouts")

            tx_hash = normalize_tx_hash(settlement.booking.chain, payout_tx_hash)

            try:
                with transaction.atomic():
                    settlement.mark_paid_out(admin, tx_hash, at=timezone.now())
                    settlement.save()
            except ConcurrentTransition as exc:
                raise ConcurrentModificationError(
                    "Settlement was updated by another request",
                    details={"settlement_id": str(settlement.pk)},
                ) from exc
        except BaseApplicationError as exc:
            return cls.handle_exception(exc, "mark_paid_out")

        logger.info(
            "Settlement paid out",
            extra={
                "settlement_id": str(settlement.pk),
                "booking_id": str(settlement.booking_id),
                "payout_tx_hash": tx_hash,
            },
        )
        return ServiceResult.success(settlement)
