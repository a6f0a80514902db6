"""
Input validators for crypto payments.

Transaction hashes are validated against the format of their network and
normalized so the (network, tx_hash) uniqueness constraint catches replays
that differ only in letter case.

Usage:
    from payments.validators import normalize_tx_hash

    tx_hash = normalize_tx_hash("base", "0xABC...")  # -> "0xabc..."
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from django.conf import settings

from core.exceptions import ValidationError
from payments.exceptions import InvalidTxHashError
from payments.state_machines import EVM_NETWORKS, PaymentNetwork

EVM_TX_HASH_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")

# 64-byte ed25519 signatures encode to 87 or 88 base58 characters
SOLANA_TX_HASH_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{87,88}$")

CENT = Decimal("0.01")


def normalize_tx_hash(network: str, tx_hash: str) -> str:
    """
    Validate a transaction hash for a network and return its canonical form.

    EVM hashes are hex and case-insensitive, so they are lowercased.
    Solana signatures are case-sensitive and returned as given (trimmed).

    Raises:
        InvalidTxHashError: Unknown network or malformed hash
    """
    value = (tx_hash or "").strip()

    if network in EVM_NETWORKS:
        if not EVM_TX_HASH_RE.match(value):
            raise InvalidTxHashError(
                "Transaction hash must be 0x followed by 64 hex characters",
                details={"network": network},
            )
        return value.lower()

    if network == PaymentNetwork.SOLANA:
        if not SOLANA_TX_HASH_RE.match(value):
            raise InvalidTxHashError(
                "Solana transaction signature must be 87-88 base58 characters",
                details={"network": network},
            )
        return value

    raise InvalidTxHashError(
        f"Unsupported network '{network}'",
        error_code="UNSUPPORTED_NETWORK",
        details={"network": network},
    )


def validate_booking_amount(amount) -> Decimal:
    """
    Validate a booking price and return it as a two-decimal Decimal.

    Bounds come from BOOKING_MIN_AMOUNT / BOOKING_MAX_AMOUNT.

    Raises:
        ValidationError: Not a number, more than two decimals, or out of range
    """
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError("Amount must be a number", error_code="INVALID_AMOUNT")

    if not value.is_finite():
        raise ValidationError("Amount must be a number", error_code="INVALID_AMOUNT")

    if value != value.quantize(CENT):
        raise ValidationError(
            "Amount cannot have more than two decimal places",
            error_code="INVALID_AMOUNT",
        )

    minimum = Decimal(str(settings.BOOKING_MIN_AMOUNT))
    maximum = Decimal(str(settings.BOOKING_MAX_AMOUNT))
    if not minimum <= value <= maximum:
        raise ValidationError(
            f"Amount must be between {minimum} and {maximum} USDC",
            error_code="AMOUNT_OUT_OF_RANGE",
            details={"min": str(minimum), "max": str(maximum)},
        )

    return value.quantize(CENT)
