"""
Bookings app: the escrow lifecycle of a paid service.

This app handles:
- Booking state machine (draft through released/refunded/canceled)
- Proof-of-work delivery and the auto-release window
- Disputes and admin resolution
- Post-completion reviews

Related apps:
    - payments: Payment records, settlement calculation and payouts
    - notifications: In-app messages for each status change

Usage:
    from bookings.services import BookingService

    result = BookingService.submit_proof(booking_id, creator, links=[url])
"""
