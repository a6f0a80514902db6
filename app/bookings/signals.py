"""
Domain events for the booking lifecycle.

Signals:
    booking_status_changed: sent after every successful transition
        kwargs: event (BookingStatusChanged)
    release_reminder_due: sent when a delivered booking approaches release_at
        kwargs: event (ReleaseReminderDue)

Events are dispatched with transaction.on_commit, so receivers never see a
transition that was rolled back, and with send_robust, so a failing
receiver cannot undo or block the transition that triggered it.

Usage:
    from django.dispatch import receiver
    from bookings.signals import booking_status_changed

    @receiver(booking_status_changed)
    def forward(sender, event, **kwargs):
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

booking_status_changed = Signal()
release_reminder_due = Signal()


@dataclass(frozen=True)
class BookingStatusChanged:
    booking_id: UUID
    from_status: str
    to_status: str
    action: str
    timestamp: datetime
    actor_id: UUID | None = None


@dataclass(frozen=True)
class ReleaseReminderDue:
    booking_id: UUID
    hours_remaining: int
    release_at: datetime


def _dispatch(signal: Signal, sender, event) -> None:
    responses = signal.send_robust(sender=sender, event=event)
    for receiver, response in responses:
        if isinstance(response, Exception):
            logger.error(
                "Domain event receiver failed",
                extra={
                    "event": type(event).__name__,
                    "receiver": getattr(receiver, "__qualname__", repr(receiver)),
                    "error": str(response),
                },
            )


def emit_status_changed(booking, from_status: str, action: str, actor, at: datetime) -> None:
    """Queue a BookingStatusChanged event for after the current transaction commits."""
    event = BookingStatusChanged(
        booking_id=booking.pk,
        from_status=str(from_status),
        to_status=str(booking.status),
        action=action,
        timestamp=at,
        actor_id=actor.pk if actor is not None else None,
    )
    sender = type(booking)
    transaction.on_commit(lambda: _dispatch(booking_status_changed, sender, event))


def emit_release_reminder(booking, hours_remaining: int) -> None:
    event = ReleaseReminderDue(
        booking_id=booking.pk,
        hours_remaining=hours_remaining,
        release_at=booking.release_at,
    )
    sender = type(booking)
    transaction.on_commit(lambda: _dispatch(release_reminder_due, sender, event))
