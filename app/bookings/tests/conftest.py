"""
Pytest fixtures for booking tests.

Fixtures provide bookings between client_user and creator_user at each
point of the lifecycle, so tests can start from the state they exercise.

Usage:
    def test_accept(delivered_booking, client_user):
        BookingStateMachine(delivered_booking).accept(client_user)
"""

import pytest

from bookings.tests.factories import BookingFactory, DisputeFactory

@pytest.fixture
def draft_booking(db, client_user, creator_user):
    return BookingFactory(client=client_user, creator=creator_user)


@pytest.fixture
def pending_booking(db, client_user, creator_user):
    return BookingFactory(client=client_user, creator=creator_user, pending=True)


@pytest.fixture
def paid_booking(db, client_user, creator_user):
    """Paid, work not started yet."""
    return BookingFactory(client=client_user, creator=creator_user, paid=True)


@pytest.fixture
def started_booking(db, client_user, creator_user):
    return BookingFactory(client=client_user, creator=creator_user, started=True)


@pytest.fixture
def delivered_booking(db, client_user, creator_user):
    """Delivered now; release_at is one window away."""
    return BookingFactory(client=client_user, creator=creator_user, delivered=True)


@pytest.fixture
def disputed_booking(db, client_user, creator_user):
    return BookingFactory(client=client_user, creator=creator_user, disputed=True)


@pytest.fixture
def open_dispute(db, disputed_booking, client_user):
    return DisputeFactory(booking=disputed_booking, opened_by=client_user)
