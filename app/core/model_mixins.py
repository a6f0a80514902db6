"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key
    VersionedMixin: Version counter checked and bumped on every update

Usage:
    from django_fsm import ConcurrentTransitionMixin

    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin

    class Booking(
        ConcurrentTransitionMixin, VersionedMixin, UUIDPrimaryKeyMixin, BaseModel
    ):
        ...

Note:
    ConcurrentTransitionMixin guards the status column; VersionedMixin guards
    everything else. A write that keeps the status (start_work, a
    cancellation request, reminder marks) still fails when another actor
    saved the row after this instance was loaded.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.db import models

if TYPE_CHECKING:
    from typing import Any


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    Booking and payment ids are shared with clients and the payout process,
    so they must not reveal volume or ordering.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class VersionedMixin(models.Model):
    """
    Monotonic version counter used as a compare-and-swap token.

    Every update is written as
    ``UPDATE ... SET version = <loaded + 1> WHERE id = %s AND version = <loaded>``
    so a save from a stale snapshot matches zero rows, even when it keeps
    the status unchanged. Used together with ConcurrentTransitionMixin,
    which turns that zero-row update into ConcurrentTransition.

    The new version is computed in Python, so no reload is needed after
    the write.
    """

    version = models.PositiveIntegerField(
        default=1,
        help_text="Incremented on every save",
    )

    class Meta:
        abstract = True

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_version = instance.__dict__.get("version")
        return instance

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self._state.adding:
            super().save(*args, **kwargs)
            self._loaded_version = self.version
            return

        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | {"version", "updated_at"}

        expected = getattr(self, "_loaded_version", None)
        if expected is None:
            expected = self.version
            self._loaded_version = expected

        self.version = expected + 1
        try:
            super().save(*args, **kwargs)
        except Exception:
            self.version = expected
            raise
        self._loaded_version = self.version

    def _do_update(self, base_qs, using, pk_val, values, update_fields, forced_update):
        if self._meta.get_field("version").model == base_qs.model:
            base_qs = base_qs.filter(version=self._loaded_version)
        return super()._do_update(
            base_qs=base_qs,
            using=using,
            pk_val=pk_val,
            values=values,
            update_fields=update_fields,
            forced_update=forced_update,
        )
