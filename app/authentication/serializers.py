"""
Serializers for authentication models.

This module provides DRF serializers for:
- User model (read operations, embedded in booking and payment responses)

Security:
    - Only the fields a counterparty needs are exposed
    - All fields are read-only
"""

from rest_framework import serializers

from authentication.models import User


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for User model (read operations).

    Used wherever a booking party is shown to the other party.
    """

    full_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "full_name",
            "role",
            "wallet_address",
        ]
        read_only_fields = fields

    def get_full_name(self, obj) -> str:
        """Return the user's display name, falling back to email."""
        return obj.get_full_name()
