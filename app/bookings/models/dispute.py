"""
Dispute model.

Created when a client or creator contests a delivery. The OneToOne link
enforces one dispute per booking, ever: a resolved dispute stays resolved
and the booking cannot be disputed again.

The dispute row is only written together with its booking, inside the same
transaction (see BookingStateMachine.open_dispute / resolve_dispute).
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from bookings.state_machines import DisputeOutcome, DisputeStatus
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


def _is_platform_admin(instance, user) -> bool:
    return user is not None and user.is_platform_admin


class Dispute(ConcurrentTransitionMixin, UUIDPrimaryKeyMixin, BaseModel):
    """
    Contested delivery awaiting an admin decision.

    State Flow:
        OPEN -> RESOLVED
    """

    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="dispute",
    )
    opened_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="disputes_opened",
    )
    reason = models.TextField()

    status = FSMField(
        default=DisputeStatus.OPEN,
        choices=DisputeStatus.choices,
        protected=True,
        db_index=True,
    )
    outcome = models.CharField(
        max_length=10,
        choices=DisputeOutcome.choices,
        blank=True,
    )
    resolution_note = models.CharField(max_length=500, blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="disputes_resolved",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Dispute {self.id} on booking {self.booking_id} ({self.status})"

    @property
    def is_open(self) -> bool:
        return self.status == DisputeStatus.OPEN

    @transition(
        field=status,
        source=DisputeStatus.OPEN,
        target=DisputeStatus.RESOLVED,
        permission=_is_platform_admin,
    )
    def resolve(self, admin, outcome, note, at):
        """
        Record the admin decision.

        Transition: OPEN -> RESOLVED
        """
        self.outcome = outcome
        self.resolution_note = note
        self.resolved_by = admin
        self.resolved_at = at
