"""
Settlement calculator.

Pure functions that split a gross amount into creator and platform shares.
Nothing here touches the database; payments.services.settlement_service
persists the result.

Rules:
    service_booking: creator gets (100 - PLATFORM_FEE_PERCENT)% rounded down
                     to the cent, platform gets the rest, so the two shares
                     always add up to the gross amount exactly
    creator_tier:    platform keeps 100% (subscription fee)
    refund outcome:  client recovers 100%, both shares are zero

Usage:
    from decimal import Decimal
    from payments.settlement import settle, settle_refund

    split = settle(Decimal("100"), "service_booking")
    split.creator_share   # Decimal("85.00")
    split.platform_share  # Decimal("15.00")

    settle_refund(Decimal("100")).client_refund  # Decimal("100.00")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

from django.conf import settings

from payments.state_machines import PaymentType

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class SettlementSplit:
    """Computed amounts for one settlement. All values are two-decimal Decimals."""

    gross_amount: Decimal
    creator_share: Decimal
    platform_share: Decimal
    client_refund: Decimal = ZERO

    def as_dict(self) -> dict[str, str]:
        return {
            "gross_amount": str(self.gross_amount),
            "creator_share": str(self.creator_share),
            "platform_share": str(self.platform_share),
            "client_refund": str(self.client_refund),
        }


def to_amount(value) -> Decimal:
    """
    Coerce a value to a non-negative two-decimal Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary
    expansion.

    Raises:
        ValueError: Negative or non-finite amount
    """
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    if amount < 0:
        raise ValueError(f"Amount cannot be negative, got {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def settle(gross, payment_type: str, fee_percent: int | None = None) -> SettlementSplit:
    """
    Split a gross amount according to the payment type.

    Args:
        gross: Gross amount (Decimal, int, str or float)
        payment_type: PaymentType value
        fee_percent: Platform fee override; defaults to PLATFORM_FEE_PERCENT

    Raises:
        ValueError: Negative amount, unknown payment type, or fee outside 0-100
    """
    amount = to_amount(gross)

    if payment_type == PaymentType.CREATOR_TIER:
        return SettlementSplit(
            gross_amount=amount, creator_share=ZERO, platform_share=amount
        )

    if payment_type != PaymentType.SERVICE_BOOKING:
        raise ValueError(f"Unknown payment type: {payment_type!r}")

    if fee_percent is None:
        fee_percent = settings.PLATFORM_FEE_PERCENT
    fee = Decimal(fee_percent)
    if not ZERO <= fee <= HUNDRED:
        raise ValueError(f"Fee percent must be between 0 and 100, got {fee_percent}")

    creator_share = (amount * (HUNDRED - fee) / HUNDRED).quantize(
        CENT, rounding=ROUND_DOWN
    )
    return SettlementSplit(
        gross_amount=amount,
        creator_share=creator_share,
        platform_share=amount - creator_share,
    )


def settle_refund(gross) -> SettlementSplit:
    """Refund outcome: the client recovers the full gross amount."""
    amount = to_amount(gross)
    return SettlementSplit(
        gross_amount=amount,
        creator_share=ZERO,
        platform_share=ZERO,
        client_refund=amount,
    )
