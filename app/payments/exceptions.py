"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentNotFoundError (NotFoundError) - payment lookup failures
    SettlementNotFoundError (NotFoundError) - settlement lookup failures
    InvalidTxHashError (ValidationError) - hash does not match network format
    PaymentAmountMismatchError (ValidationError) - amount differs from booking price
    DuplicateTxHashError (ConflictError) - tx hash already recorded on network
    AlreadySettledError (ConflictError) - booking already has a settlement

Lifecycle errors (illegal transitions, lost compare-and-swap races, wrong
actor) are shared with bookings and live in bookings.exceptions.

Usage:
    from payments.exceptions import DuplicateTxHashError

    raise DuplicateTxHashError(
        "Transaction hash already submitted",
        details={"network": "base", "tx_hash": tx_hash},
    )
"""

from __future__ import annotations

from core.exceptions import ConflictError, NotFoundError, ValidationError


class PaymentNotFoundError(NotFoundError):
    default_error_code: str = "NOT_FOUND"


class SettlementNotFoundError(NotFoundError):
    default_error_code: str = "NOT_FOUND"


class InvalidTxHashError(ValidationError):
    """
    Raised when a transaction hash does not match its network's format.

    EVM networks use 0x-prefixed 64-hex hashes; Solana signatures are
    base58 strings.
    """

    default_error_code: str = "INVALID_TX_HASH"


class PaymentAmountMismatchError(ValidationError):
    default_error_code: str = "AMOUNT_MISMATCH"


class DuplicateTxHashError(ConflictError):
    """
    Raised when a transaction hash was already recorded for the network.

    Covers replays of verified payments and resubmission of a hash an
    admin already rejected.
    """

    default_error_code: str = "DUPLICATE_TX_HASH"


class AlreadySettledError(ConflictError):
    default_error_code: str = "ALREADY_SETTLED"
