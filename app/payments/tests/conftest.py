"""
Pytest fixtures for payment tests.

Usage:
    def test_verify(submitted_payment, admin_user):
        PaymentService.verify_payment(submitted_payment.pk, admin_user)
"""

import pytest

from bookings.tests.factories import BookingFactory
from payments.tests.factories import PaymentFactory


@pytest.fixture
def tx_hash():
    return "0x" + "ab" * 32


@pytest.fixture
def booking(db, client_user, creator_user):
    """Draft booking at 100.00 USDC on base."""
    return BookingFactory(client=client_user, creator=creator_user)


@pytest.fixture
def submitted_payment(db, client_user, creator_user):
    """Submitted payment with its booking pending verification."""
    booking = BookingFactory(client=client_user, creator=creator_user, pending=True)
    return PaymentFactory(booking=booking)


@pytest.fixture
def delivered_booking(db, client_user, creator_user):
    return BookingFactory(client=client_user, creator=creator_user, delivered=True)
