"""
Payment domain models.

- Payment: Crypto payment claim verified by an admin
- Settlement: Computed split for a released or refunded booking
"""

from payments.models.payment import Payment
from payments.models.settlement import Settlement

__all__ = [
    "Payment",
    "Settlement",
]
