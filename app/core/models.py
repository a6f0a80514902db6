"""
Abstract base model shared by every persisted entity.

Bookings, payments, disputes, reviews and settlements all carry creation and
modification timestamps through BaseModel. Primary-key and versioning
behaviour is layered on with the mixins in core.model_mixins.

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin

    class Booking(UUIDPrimaryKeyMixin, BaseModel):
        ...

Note:
    Always list mixins before BaseModel in inheritance.
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """
    Abstract model with created_at/updated_at.

    Never deleted rows are the norm in this project: lifecycle ends are
    expressed as statuses, so created_at doubles as the audit start time.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self.pk})"
