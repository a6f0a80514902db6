"""
Payment services.

- PaymentService: Submission and admin verification of crypto payments
- SettlementService: Settlement records and payout tracking

Usage:
    from payments.services import PaymentService, SettlementService

    result = PaymentService.verify_payment(payment_id, admin)
    result = SettlementService.mark_paid_out(settlement_id, admin, payout_tx_hash)
"""

from payments.services.payment_service import PaymentService
from payments.services.settlement_service import SettlementService

__all__ = [
    "PaymentService",
    "SettlementService",
]
