"""
Booking domain models.

- Booking: Client-creator transaction with escrow lifecycle
- Dispute: Contested delivery resolved by an admin
- Review: Rating left by one party for the other
"""

from bookings.models.booking import Booking
from bookings.models.dispute import Dispute
from bookings.models.review import Review

__all__ = [
    "Booking",
    "Dispute",
    "Review",
]
