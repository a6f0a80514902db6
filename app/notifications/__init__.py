"""
Notifications app: in-app inbox for booking parties.

Listens to booking and settlement events and writes one notification per
affected user. Delivery beyond the inbox (email, push) is not handled here.

Related apps:
    - bookings: booking_status_changed, release_reminder_due
    - payments: settlement_applied
"""
