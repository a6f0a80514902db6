"""
Payments app: crypto payment records and escrow settlements.

This app handles:
- Payment submission and admin verification (tx hash replay protection)
- Settlement calculation (creator share, platform fee, refunds)
- Settlement payout tracking

Related apps:
    - bookings: Booking lifecycle that payments fund and settlements close
    - notifications: Settlement notifications

Usage:
    from payments.services import PaymentService

    result = PaymentService.verify_payment(payment_id, admin)
"""
