"""
Settlement events for the external payout process.

Signals:
    settlement_applied: sent once per booking when its settlement is recorded
        kwargs: event (SettlementApplied)

The core computes amounts but never moves funds; a payout process listens
for this event (or polls pending settlements) and transfers on chain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

settlement_applied = Signal()


@dataclass(frozen=True)
class SettlementApplied:
    booking_id: UUID
    settlement_id: UUID
    outcome: str
    gross_amount: Decimal
    creator_share: Decimal
    platform_share: Decimal
    client_refund: Decimal


def emit_settlement_applied(settlement) -> None:
    """Queue a SettlementApplied event for after the current transaction commits."""
    event = SettlementApplied(
        booking_id=settlement.booking_id,
        settlement_id=settlement.pk,
        outcome=settlement.outcome,
        gross_amount=settlement.gross_amount,
        creator_share=settlement.creator_share,
        platform_share=settlement.platform_share,
        client_refund=settlement.client_refund,
    )

    def dispatch():
        for receiver, response in settlement_applied.send_robust(
            sender=type(settlement), event=event
        ):
            if isinstance(response, Exception):
                logger.error(
                    "Settlement receiver failed",
                    extra={
                        "settlement_id": str(event.settlement_id),
                        "receiver": getattr(receiver, "__qualname__", repr(receiver)),
                        "error": str(response),
                    },
                )

    transaction.on_commit(dispatch)
