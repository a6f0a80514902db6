"""
Payments app configuration.

This app provides:
- Payment records for on-chain USDC transfers
- The settlement calculator and settlement records
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
