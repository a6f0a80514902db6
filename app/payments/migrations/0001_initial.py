import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("bookings", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "version",
                    models.PositiveIntegerField(default=1, help_text="Incremented on every save"),
                ),
                (
                    "service_id",
                    models.UUIDField(blank=True, help_text="Service being paid for", null=True),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=6,
                        help_text="Gross amount as submitted by the payer",
                        max_digits=18,
                    ),
                ),
                (
                    "currency",
                    models.CharField(default="USDC", help_text="Token symbol", max_length=10),
                ),
                (
                    "network",
                    models.CharField(
                        choices=[("ethereum", "Ethereum"), ("base", "Base"), ("solana", "Solana")],
                        help_text="Chain the transfer happened on",
                        max_length=16,
                    ),
                ),
                (
                    "payment_type",
                    models.CharField(
                        choices=[
                            ("service_booking", "Service Booking"),
                            ("creator_tier", "Creator Tier"),
                        ],
                        db_index=True,
                        default="service_booking",
                        max_length=20,
                    ),
                ),
                (
                    "tx_hash",
                    models.CharField(
                        help_text="Transaction hash, normalized per network", max_length=128
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("submitted", "Submitted"),
                            ("verified", "Verified"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="submitted",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.CharField(blank=True, max_length=500)),
                (
                    "booking",
                    models.ForeignKey(
                        blank=True,
                        help_text="Booking this payment is for",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="bookings.booking",
                    ),
                ),
                (
                    "creator",
                    models.ForeignKey(
                        blank=True,
                        help_text="Creator the payment is for",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments_received",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "payer",
                    models.ForeignKey(
                        help_text="User who sent the funds",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments_made",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "rejected_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "verified_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["booking", "status"], name="payment_booking_status_idx"
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("network", "tx_hash"),
                        name="unique_tx_hash_per_network",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="payment_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Settlement",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "outcome",
                    models.CharField(
                        choices=[("release", "Release to creator"), ("refund", "Refund to client")],
                        max_length=10,
                    ),
                ),
                ("gross_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("creator_share", models.DecimalField(decimal_places=2, max_digits=12)),
                ("platform_share", models.DecimalField(decimal_places=2, max_digits=12)),
                ("client_refund", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "payout_status",
                    django_fsm.FSMField(
                        choices=[("pending", "Pending"), ("paid_out", "Paid Out")],
                        db_index=True,
                        default="pending",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("payout_tx_hash", models.CharField(blank=True, max_length=128)),
                ("paid_out_at", models.DateTimeField(blank=True, null=True)),
                (
                    "booking",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="settlement",
                        to="bookings.booking",
                    ),
                ),
                (
                    "paid_out_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
