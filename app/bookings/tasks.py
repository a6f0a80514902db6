"""
Celery tasks for the bookings app.

Celery autodiscovery imports <app>.tasks; the task bodies live in
bookings.workers.

Usage:
    from bookings.tasks import process_due_releases

    process_due_releases.delay()
"""

from bookings.workers import (
    process_due_releases,
    release_single_booking,
    send_release_reminders,
)

__all__ = [
    "process_due_releases",
    "release_single_booking",
    "send_release_reminders",
]
