"""
Pytest fixtures for notification tests.
"""

import pytest

from bookings.tests.factories import BookingFactory


@pytest.fixture
def delivered_booking(db, client_user, creator_user):
    return BookingFactory(client=client_user, creator=creator_user, delivered=True)
