"""
Escrow release scheduler.

Delivered bookings carry a persisted release_at deadline. Once it passes
with no client action and no open dispute, the booking auto-releases to
the creator. Nothing in memory decides this: the sweep re-reads the
database each run, so deadlines survive restarts and deploys.

Tasks:
- process_due_releases: Periodic sweep that releases every due booking
- release_single_booking: Release one booking (admin tooling, retries)
- send_release_reminders: Periodic 24h/12h/1h reminders before release_at

All three are idempotent. A booking that was accepted, disputed or released
by someone else between the query and the write fails its compare-and-swap
and is counted as skipped.

Usage:
    # Typically called via celery-beat schedule
    from bookings.workers import process_due_releases

    process_due_releases.delay()

    # Or synchronously, with an explicit clock
    result = ReleaseScheduler().run_sweep(now=timezone.now())
    result.released_ids
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django_fsm import ConcurrentTransition

from bookings.exceptions import ConcurrentModificationError, InvalidTransitionError
from bookings.models import Booking
from bookings.signals import emit_release_reminder
from bookings.state_machine import BookingStateMachine
from bookings.state_machines import BookingStatus, DisputeStatus

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Outcome of one release sweep."""

    released: int = 0
    skipped: int = 0
    failed: int = 0
    released_ids: list[UUID] = field(default_factory=list)

    def as_dict(self) -> dict:
        data = asdict(self)
        data["released_ids"] = [str(pk) for pk in self.released_ids]
        return data


class ReleaseScheduler:
    """
    Finds delivered bookings whose release window elapsed and releases them.

    Each booking is processed in its own transaction. One booking failing
    (lost race, database error, bad data) never stops the rest of the sweep.
    """

    def __init__(self, batch_size: int | None = None):
        self.batch_size = batch_size or settings.RELEASE_SWEEP_BATCH_SIZE

    def due_bookings(self, now: datetime):
        return (
            Booking.objects.filter(
                status=BookingStatus.DELIVERED,
                release_at__lte=now,
            )
            .exclude(dispute__status=DisputeStatus.OPEN)
            .order_by("release_at")
        )

    def run_sweep(self, now: datetime | None = None) -> SweepResult:
        """
        Release every booking that is due at ``now``.

        Bookings are read in batches of ``batch_size`` ids; ids already
        attempted in this run are excluded from later batches so a booking
        that keeps failing is tried once per sweep.
        """
        now = now or timezone.now()
        result = SweepResult()
        attempted: set[UUID] = set()

        logger.info("Starting release sweep", extra={"sweep_at": now.isoformat()})

        while True:
            batch = list(
                self.due_bookings(now)
                .exclude(pk__in=attempted)
                .values_list("pk", flat=True)[: self.batch_size]
            )
            if not batch:
                break

            for booking_id in batch:
                attempted.add(booking_id)
                self._release(booking_id, now, result)

            if len(batch) < self.batch_size:
                break

        logger.info(
            "Release sweep complete",
            extra={
                "released": result.released,
                "skipped": result.skipped,
                "failed": result.failed,
            },
        )
        return result

    def release_one(self, booking_id, now: datetime | None = None) -> Booking:
        """
        Auto-release a single booking from a fresh read.

        Raises:
            Booking.DoesNotExist: Unknown booking
            InvalidTransitionError: Not delivered, not yet due, or disputed
            ConcurrentModificationError: Another actor moved it first
        """
        booking = Booking.objects.select_related("client", "creator").get(pk=booking_id)
        return BookingStateMachine(booking).auto_release(at=now or timezone.now())

    def _release(self, booking_id: UUID, now: datetime, result: SweepResult) -> None:
        try:
            self.release_one(booking_id, now)
        except (ConcurrentModificationError, InvalidTransitionError, Booking.DoesNotExist) as exc:
            result.skipped += 1
            logger.info(
                "Booking skipped by release sweep",
                extra={"booking_id": str(booking_id), "reason": str(exc)},
            )
        except Exception as exc:
            result.failed += 1
            logger.exception(
                "Auto-release failed",
                extra={"booking_id": str(booking_id), "error": str(exc)},
            )
        else:
            result.released += 1
            result.released_ids.append(booking_id)
            logger.info(
                "Booking auto-released",
                extra={"booking_id": str(booking_id)},
            )

    # ==========================================================================
    # Reminders
    # ==========================================================================

    def send_reminders(self, now: datetime | None = None) -> int:
        """
        Emit release reminders for delivered bookings nearing release_at.

        Only the most urgent unsent mark fires per booking; larger marks
        that were skipped (the booking was delivered late in its window, or
        the task did not run for a while) are recorded as sent too.

        Returns the number of reminders emitted. Best effort: reminders
        never block or delay a release.
        """
        now = now or timezone.now()
        marks = sorted({int(hours) for hours in settings.RELEASE_REMINDER_HOURS})
        if not marks:
            return 0

        candidates = (
            Booking.objects.filter(
                status=BookingStatus.DELIVERED,
                release_at__gt=now,
                release_at__lte=now + timedelta(hours=marks[-1]),
            )
            .exclude(dispute__status=DisputeStatus.OPEN)
            .order_by("release_at")
        )

        sent = 0
        for booking in candidates[: self.batch_size]:
            remaining = booking.release_at - now
            applicable = [m for m in marks if remaining <= timedelta(hours=m)]
            already_sent = set(booking.release_reminders_sent or [])
            pending = [m for m in applicable if m not in already_sent]
            if not pending:
                continue

            booking.release_reminders_sent = sorted(already_sent | set(applicable))
            try:
                with transaction.atomic():
                    booking.save(update_fields=["release_reminders_sent"])
                    emit_release_reminder(booking, hours_remaining=pending[0])
            except ConcurrentTransition:
                logger.info(
                    "Booking changed before reminder was recorded",
                    extra={"booking_id": str(booking.pk)},
                )
                continue

            sent += 1
            logger.info(
                "Release reminder queued",
                extra={"booking_id": str(booking.pk), "hours_remaining": pending[0]},
            )
        return sent


# =============================================================================
# Celery tasks
# =============================================================================


@shared_task(bind=True, acks_late=True)
def process_due_releases(self) -> dict:
    """
    Periodic sweep over due bookings.

    Returns:
        SweepResult as a dict (released, skipped, failed, released_ids)
    """
    return ReleaseScheduler().run_sweep().as_dict()


@shared_task(
    bind=True,
    autoretry_for=(ConnectionError,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": 3},
    acks_late=True,
)
def release_single_booking(self, booking_id: str) -> dict:
    """
    Release one booking if it is due.

    Returns:
        Dict with status one of "released", "not_found", "skipped"
    """
    try:
        booking_uuid = UUID(str(booking_id))
    except ValueError:
        logger.error("Invalid booking_id format", extra={"booking_id": str(booking_id)})
        return {"status": "not_found", "booking_id": str(booking_id)}

    try:
        booking = ReleaseScheduler().release_one(booking_uuid)
    except Booking.DoesNotExist:
        logger.warning("Booking not found", extra={"booking_id": str(booking_id)})
        return {"status": "not_found", "booking_id": str(booking_id)}
    except (ConcurrentModificationError, InvalidTransitionError) as exc:
        logger.info(
            "Booking not released",
            extra={"booking_id": str(booking_id), "error_code": exc.error_code},
        )
        return {
            "status": "skipped",
            "booking_id": str(booking_id),
            "error": exc.message,
            "error_code": exc.error_code,
        }

    return {"status": "released", "booking_id": str(booking.pk)}


@shared_task(bind=True, acks_late=True)
def send_release_reminders(self) -> dict:
    """Periodic reminder pass for bookings approaching auto-release."""
    return {"sent_count": ReleaseScheduler().send_reminders()}
