"""
Workers for time-driven booking transitions.

- ReleaseScheduler: Auto-releases delivered bookings once release_at passes
  and sends reminders before it does

Usage:
    from bookings.workers import (
        process_due_releases,
        release_single_booking,
        send_release_reminders,
    )

    process_due_releases.delay()
    release_single_booking.delay(str(booking_id))
"""

from bookings.workers.release_scheduler import (
    ReleaseScheduler,
    SweepResult,
    process_due_releases,
    release_single_booking,
    send_release_reminders,
)

__all__ = [
    "ReleaseScheduler",
    "SweepResult",
    "process_due_releases",
    "release_single_booking",
    "send_release_reminders",
]
