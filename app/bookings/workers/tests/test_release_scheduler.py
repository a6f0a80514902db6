"""
Tests for the escrow release scheduler and its Celery tasks.

Time is controlled with freezegun and explicit ``now`` arguments; the
sweep always reads deadlines from the database.
"""

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal
from unittest import mock

import pytest
from freezegun import freeze_time

from bookings.signals import release_reminder_due
from bookings.state_machine import BookingStateMachine
from bookings.state_machines import BookingStatus
from bookings.tests.factories import BookingFactory, DisputeFactory, reload_booking
from bookings.workers import (
    ReleaseScheduler,
    process_due_releases,
    release_single_booking,
    send_release_reminders,
)
from payments.models import Settlement

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def due_booking(db, client_user, creator_user):
    """Delivered at T0; due at T0 + 72h."""
    return BookingFactory(
        client=client_user, creator=creator_user, delivered=True, delivered_at=T0
    )


@pytest.fixture
def reminders():
    events = []

    def receiver(sender, event, **kwargs):
        events.append(event)

    release_reminder_due.connect(receiver, weak=False)
    yield events
    release_reminder_due.disconnect(receiver)


# =============================================================================
# Sweep
# =============================================================================


class TestRunSweep:
    def test_releases_due_booking(self, db, due_booking):
        """Proof at T0, no client action: released at T0 + 72h with 85/15."""
        result = ReleaseScheduler().run_sweep(now=T0 + timedelta(hours=72))

        assert result.released == 1
        assert result.released_ids == [due_booking.pk]

        booking = reload_booking(due_booking)
        assert booking.status == BookingStatus.RELEASED
        assert booking.released_at == T0 + timedelta(hours=72)
        assert booking.settlement.creator_share == Decimal("85.00")
        assert booking.settlement.platform_share == Decimal("15.00")

    def test_not_released_before_deadline(self, db, due_booking):
        result = ReleaseScheduler().run_sweep(now=T0 + timedelta(hours=71, minutes=59))

        assert result.released == 0
        assert reload_booking(due_booking).status == BookingStatus.DELIVERED

    def test_disputed_booking_is_never_released(self, db, client_user, creator_user):
        booking = BookingFactory(
            client=client_user, creator=creator_user, disputed=True, delivered_at=T0
        )
        DisputeFactory(booking=booking, opened_by=client_user)

        result = ReleaseScheduler().run_sweep(now=T0 + timedelta(days=30))

        assert result.released == 0
        assert result.skipped == 0
        assert reload_booking(booking).status == BookingStatus.DISPUTED
        assert not Settlement.objects.exists()

    def test_accepted_booking_is_left_alone(self, db, due_booking, client_user):
        BookingStateMachine(due_booking).accept(client_user, at=T0 + timedelta(hours=1))

        result = ReleaseScheduler().run_sweep(now=T0 + timedelta(hours=73))

        assert result.released == 0
        assert reload_booking(due_booking).status == BookingStatus.ACCEPTED
        assert Settlement.objects.count() == 1

    def test_second_sweep_is_a_no_op(self, db, due_booking):
        scheduler = ReleaseScheduler()
        scheduler.run_sweep(now=T0 + timedelta(hours=72))

        result = scheduler.run_sweep(now=T0 + timedelta(hours=80))

        assert result.released == 0
        assert Settlement.objects.filter(booking=due_booking).count() == 1

    def test_processes_every_batch(self, db, client_user, creator_user):
        bookings = [
            BookingFactory(
                client=client_user,
                creator=creator_user,
                delivered=True,
                delivered_at=T0 - timedelta(minutes=i),
            )
            for i in range(5)
        ]

        result = ReleaseScheduler(batch_size=2).run_sweep(now=T0 + timedelta(hours=72))

        assert result.released == 5
        assert set(result.released_ids) == {b.pk for b in bookings}

    def test_one_failure_does_not_stop_the_sweep(self, db, client_user, creator_user):
        first = BookingFactory(
            client=client_user, creator=creator_user, delivered=True, delivered_at=T0
        )
        second = BookingFactory(
            client=client_user,
            creator=creator_user,
            delivered=True,
            delivered_at=T0 + timedelta(minutes=1),
        )
        real_auto_release = BookingStateMachine.auto_release

        def flaky(machine, at=None):
            if machine.booking.pk == first.pk:
                raise RuntimeError("connection reset")
            return real_auto_release(machine, at=at)

        with mock.patch.object(BookingStateMachine, "auto_release", flaky):
            result = ReleaseScheduler().run_sweep(now=T0 + timedelta(hours=73))

        assert result.failed == 1
        assert result.released == 1
        assert result.released_ids == [second.pk]
        assert reload_booking(first).status == BookingStatus.DELIVERED

    def test_lost_race_is_skipped(self, db, due_booking, client_user):
        """A booking accepted between the query and the write counts as skipped."""
        scheduler = ReleaseScheduler()
        real_release_one = scheduler.release_one

        def accept_first(booking_id, now):
            BookingStateMachine(reload_booking(due_booking)).accept(client_user)
            return real_release_one(booking_id, now)

        with mock.patch.object(scheduler, "release_one", side_effect=accept_first):
            result = scheduler.run_sweep(now=T0 + timedelta(hours=72))

        assert result.skipped == 1
        assert result.released == 0
        assert Settlement.objects.filter(booking=due_booking).count() == 1

    def test_as_dict(self, db, due_booking):
        data = ReleaseScheduler().run_sweep(now=T0 + timedelta(hours=72)).as_dict()

        assert data == {
            "released": 1,
            "skipped": 0,
            "failed": 0,
            "released_ids": [str(due_booking.pk)],
        }


# =============================================================================
# Tasks
# =============================================================================


class TestTasks:
    def test_process_due_releases(self, db, due_booking):
        with freeze_time(T0 + timedelta(hours=72, seconds=1)):
            result = process_due_releases.apply().get()

        assert result["released"] == 1
        assert reload_booking(due_booking).status == BookingStatus.RELEASED

    def test_release_single_booking(self, db, due_booking):
        with freeze_time(T0 + timedelta(hours=73)):
            result = release_single_booking.apply(args=[str(due_booking.pk)]).get()

        assert result == {"status": "released", "booking_id": str(due_booking.pk)}

    def test_release_single_booking_not_due(self, db, due_booking):
        with freeze_time(T0 + timedelta(hours=1)):
            result = release_single_booking.apply(args=[str(due_booking.pk)]).get()

        assert result["status"] == "skipped"
        assert result["error_code"] == "INVALID_TRANSITION"

    @pytest.mark.parametrize("booking_id", ["not-a-uuid", "8d3b5f0e-0000-4000-8000-000000000000"])
    def test_release_single_booking_not_found(self, db, booking_id):
        result = release_single_booking.apply(args=[booking_id]).get()

        assert result["status"] == "not_found"


# =============================================================================
# Reminders
# =============================================================================


class TestReminders:
    def test_sends_24h_reminder(self, db, due_booking, reminders, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            sent = ReleaseScheduler().send_reminders(now=T0 + timedelta(hours=49))

        assert sent == 1
        assert [event.hours_remaining for event in reminders] == [24]
        assert reload_booking(due_booking).release_reminders_sent == [24]

    def test_each_mark_sent_once(self, db, due_booking, reminders, django_capture_on_commit_callbacks):
        scheduler = ReleaseScheduler()
        with django_capture_on_commit_callbacks(execute=True):
            scheduler.send_reminders(now=T0 + timedelta(hours=49))
            scheduler.send_reminders(now=T0 + timedelta(hours=50))
            scheduler.send_reminders(now=T0 + timedelta(hours=61))

        assert [event.hours_remaining for event in reminders] == [24, 12]

    def test_only_most_urgent_mark_fires(
        self, db, due_booking, reminders, django_capture_on_commit_callbacks
    ):
        """A late first run sends the 1h reminder and records the skipped marks."""
        with django_capture_on_commit_callbacks(execute=True):
            ReleaseScheduler().send_reminders(now=T0 + timedelta(hours=71, minutes=30))

        assert [event.hours_remaining for event in reminders] == [1]
        assert reload_booking(due_booking).release_reminders_sent == [1, 12, 24]

    def test_no_reminder_outside_window(self, db, due_booking, reminders):
        assert ReleaseScheduler().send_reminders(now=T0 + timedelta(hours=1)) == 0
        assert ReleaseScheduler().send_reminders(now=T0 + timedelta(hours=73)) == 0

    def test_disputed_booking_gets_no_reminder(self, db, client_user, creator_user):
        booking = BookingFactory(
            client=client_user, creator=creator_user, disputed=True, delivered_at=T0
        )
        DisputeFactory(booking=booking, opened_by=client_user)

        assert ReleaseScheduler().send_reminders(now=T0 + timedelta(hours=60)) == 0

    def test_reminders_do_not_change_status_or_deadline(self, db, due_booking):
        release_at = due_booking.release_at

        ReleaseScheduler().send_reminders(now=T0 + timedelta(hours=60))

        booking = reload_booking(due_booking)
        assert booking.status == BookingStatus.DELIVERED
        assert booking.release_at == release_at

    def test_task(self, db, due_booking):
        with freeze_time(T0 + timedelta(hours=60)):
            result = send_release_reminders.apply().get()

        assert result == {"sent_count": 1}
