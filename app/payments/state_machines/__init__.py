"""
State machine enums for payment models.
"""

from payments.state_machines.states import (
    EVM_NETWORKS,
    PaymentNetwork,
    PaymentStatus,
    PaymentType,
    PayoutStatus,
    SettlementOutcome,
)

__all__ = [
    "EVM_NETWORKS",
    "PaymentNetwork",
    "PaymentStatus",
    "PaymentType",
    "PayoutStatus",
    "SettlementOutcome",
]
