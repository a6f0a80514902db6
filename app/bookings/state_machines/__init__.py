"""
State machine enums for booking models.
"""

from bookings.state_machines.states import (
    FUNDED_CANCELABLE_STATUSES,
    PRE_FUNDING_STATUSES,
    REVIEWABLE_STATUSES,
    TERMINAL_STATUSES,
    BookingStatus,
    DisputeOutcome,
    DisputeStatus,
)

__all__ = [
    "BookingStatus",
    "DisputeOutcome",
    "DisputeStatus",
    "FUNDED_CANCELABLE_STATUSES",
    "PRE_FUNDING_STATUSES",
    "REVIEWABLE_STATUSES",
    "TERMINAL_STATUSES",
]
