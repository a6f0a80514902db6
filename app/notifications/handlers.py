"""
Signal handlers for cross-app notification events.

Event Sources:
    - bookings: booking_status_changed, release_reminder_due
    - payments: settlement_applied

Handlers run after the triggering transaction commits (the senders use
transaction.on_commit) and are dispatched with send_robust, so a failure
here is logged by the sender and never affects the booking.

Usage:
    Handlers are registered in apps.py when the app is ready.
"""

from __future__ import annotations

import logging

from django.dispatch import receiver

from bookings.models import Booking
from bookings.signals import booking_status_changed, release_reminder_due
from notifications.models import NotificationKind
from notifications.services import NotificationService
from payments.signals import settlement_applied
from payments.state_machines import SettlementOutcome

logger = logging.getLogger(__name__)


STATUS_TITLES = {
    "pending": "Payment submitted for verification",
    "payment_rejected": "Payment could not be verified",
    "paid": "Payment verified; funds are in escrow",
    "delivered": "Work delivered",
    "accepted": "Delivery accepted",
    "disputed": "Booking disputed",
    "released": "Escrow released to the creator",
    "refunded": "Escrow refunded to the client",
    "canceled": "Booking canceled",
}

ACTION_TITLES = {
    "start_work": "Work started",
    "request_cancellation": "Cancellation requested",
}


def _load_booking(booking_id):
    booking = Booking.objects.select_related("client", "creator").filter(pk=booking_id).first()
    if booking is None:
        logger.warning("Notification skipped, booking missing", extra={"booking_id": str(booking_id)})
    return booking


@receiver(booking_status_changed)
def on_booking_status_changed(sender, event, **kwargs):
    """Notify both parties of every booking transition."""
    booking = _load_booking(event.booking_id)
    if booking is None:
        return

    title = ACTION_TITLES.get(event.action) or STATUS_TITLES.get(
        event.to_status, f"Booking is now {event.to_status}"
    )
    NotificationService.notify_booking_parties(
        booking,
        kind=NotificationKind.BOOKING_STATUS,
        title=title,
        data={
            "from_status": event.from_status,
            "to_status": event.to_status,
            "action": event.action,
            "actor_id": str(event.actor_id) if event.actor_id else None,
        },
    )


@receiver(release_reminder_due)
def on_release_reminder_due(sender, event, **kwargs):
    """Tell both parties the escrow auto-releases soon."""
    booking = _load_booking(event.booking_id)
    if booking is None:
        return

    unit = "hour" if event.hours_remaining == 1 else "hours"
    NotificationService.notify_booking_parties(
        booking,
        kind=NotificationKind.RELEASE_REMINDER,
        title=f"Escrow releases in {event.hours_remaining} {unit}",
        body=(
            "Accept the delivery or open a dispute before then; otherwise the "
            "payment is released to the creator automatically."
        ),
        data={
            "hours_remaining": event.hours_remaining,
            "release_at": event.release_at.isoformat(),
        },
    )


@receiver(settlement_applied)
def on_settlement_applied(sender, event, **kwargs):
    """Tell the payee how much they will receive."""
    booking = _load_booking(event.booking_id)
    if booking is None:
        return

    if event.outcome == SettlementOutcome.REFUND:
        recipient, amount = booking.client, event.client_refund
        title = f"{amount} USDC will be refunded to you"
    else:
        recipient, amount = booking.creator, event.creator_share
        title = f"{amount} USDC will be paid out to you"

    NotificationService.create_notification(
        recipient,
        kind=NotificationKind.SETTLEMENT,
        title=title,
        booking=booking,
        data={
            "settlement_id": str(event.settlement_id),
            "outcome": event.outcome,
            "amount": str(amount),
        },
    )
